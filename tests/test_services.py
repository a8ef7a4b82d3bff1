"""Tests for the in-memory and file-backed collaborators."""

import json
import os
import tempfile
from datetime import datetime

import pytest

from src.affiliate_migrate.models.affiliate import AffiliateCreate
from src.affiliate_migrate.models.user import User, UserQuery
from src.affiliate_migrate.services.memory import (
    InMemoryAffiliateStore,
    InMemoryProgressStore,
    InMemoryUserDirectory,
    StaticPermissionService,
)
from src.affiliate_migrate.services.progress import JsonFileProgressStore


def make_user(user_id, roles):
    return User(
        id=user_id,
        user_email=f'User{user_id}@Example.com',
        user_registered=datetime(2019, 3, user_id),
        roles=roles,
    )


class TestInMemoryUserDirectory:
    """Test the in-memory user directory."""

    def setup_method(self):
        """Set up test fixtures."""
        self.directory = InMemoryUserDirectory(
            [
                make_user(4, ['subscriber']),
                make_user(2, ['editor']),
                make_user(1, ['subscriber']),
                make_user(3, ['subscriber', 'editor']),
                make_user(5, []),
            ]
        )

    def test_role_filter_and_order(self):
        """Test users are filtered by role and sorted by ID."""
        users = self.directory.list_users(UserQuery(role_in=['subscriber']))
        assert [u.id for u in users] == [1, 3, 4]

    def test_descending_order(self):
        """Test descending order."""
        users = self.directory.list_users(UserQuery(role_in=['editor'], order='desc'))
        assert [u.id for u in users] == [3, 2]

    def test_exclude_offset_limit(self):
        """Test exclusion and paging."""
        query = UserQuery(role_in=['subscriber', 'editor'], exclude=[1], offset=1, limit=2)
        assert [u.id for u in self.directory.list_users(query)] == [3, 4]

    def test_empty_role_filter_matches_everyone(self):
        """Test an empty role filter does not restrict users."""
        assert self.directory.count_users(UserQuery()) == 5

    def test_count_ignores_paging(self):
        """Test counting ignores offset and limit."""
        query = UserQuery(role_in=['subscriber'], exclude=[4], offset=1, limit=1)
        assert self.directory.count_users(query) == 2

    def test_email_is_normalized(self):
        """Test user emails are lower-cased."""
        assert self.directory.users[0].user_email == 'user4@example.com'


class TestUserQuery:
    """Test user query validation."""

    def test_defaults(self):
        """Test the default query fetches conversion fields in ID order."""
        query = UserQuery()
        assert query.limit == -1
        assert query.order == 'ASC'
        assert query.fields == ['id', 'user_email', 'user_registered']

    @pytest.mark.parametrize(
        'kwargs', [{'offset': -1}, {'limit': 0}, {'limit': -2}, {'order': 'up'}]
    )
    def test_invalid_values(self, kwargs):
        """Test invalid queries are rejected."""
        with pytest.raises(ValueError):
            UserQuery(**kwargs)

    def test_to_payload(self):
        """Test rendering as a JSON request body."""
        payload = UserQuery(
            role_in=['subscriber', 'editor'], exclude=[3, 7], offset=100, limit=100
        ).to_payload()

        assert payload == {
            'role__in': ['editor', 'subscriber'],
            'exclude': [3, 7],
            'offset': 100,
            'number': 100,
            'orderby': 'id',
            'order': 'ASC',
            'fields': ['id', 'user_email', 'user_registered'],
        }

    def test_to_payload_keeps_large_exclusions(self):
        """Test every excluded ID is sent, however many there are."""
        exclude = list(range(1, 20001))

        payload = UserQuery(role_in=['subscriber'], exclude=exclude).to_payload()

        assert payload['exclude'] == exclude
        assert payload['number'] == -1


class TestInMemoryAffiliateStore:
    """Test the in-memory affiliate store."""

    def test_insert_and_lookup(self):
        """Test inserted affiliates get sequential IDs."""
        store = InMemoryAffiliateStore()
        user = make_user(9, ['subscriber'])

        assert store.insert(AffiliateCreate.from_user(user)) == 1
        assert store.insert(AffiliateCreate.from_user(make_user(8, []))) == 2
        assert store.list_user_ids() == [9, 8]
        assert store.exists_for_user(9) is True
        assert store.exists_for_user(10) is False
        assert store.affiliates[1].payment_email == 'user9@example.com'

    def test_invalid_status(self):
        """Test affiliate status validation."""
        with pytest.raises(ValueError):
            AffiliateCreate(
                status='unknown',
                user_id=1,
                payment_email='a@example.com',
                date_registered=datetime(2020, 1, 1),
            )


class TestInMemoryProgressStore:
    """Test the in-memory progress store."""

    def test_get_write_delete(self):
        """Test basic key/value operations."""
        store = InMemoryProgressStore()

        assert store.get('count') is None
        assert store.get('count', 0) == 0

        store.write('count', 5)
        assert store.get('count') == 5

        store.delete('count')
        store.delete('count')
        assert store.get('count') is None

    def test_values_are_copied(self):
        """Test stored lists cannot be changed through returned values."""
        store = InMemoryProgressStore()
        ids = [1, 2]
        store.write('ids', ids)
        ids.append(3)
        store.get('ids').append(4)

        assert store.get('ids') == [1, 2]


class TestJsonFileProgressStore:
    """Test the JSON file progress store."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, 'state', 'progress.json')

    def teardown_method(self):
        """Clean up test fixtures."""
        self.temp_dir.cleanup()

    def test_missing_file_is_empty(self):
        """Test reading before any write."""
        store = JsonFileProgressStore(self.path)
        assert store.get('anything') is None
        assert store.get('anything', 0) == 0
        store.delete('anything')
        assert not os.path.exists(self.path)

    def test_state_survives_new_instances(self):
        """Test values written by one instance are read by another."""
        JsonFileProgressStore(self.path).write('ids', [1, 2, 3])
        JsonFileProgressStore(self.path).write('count', 3)

        store = JsonFileProgressStore(self.path)
        assert store.get('ids') == [1, 2, 3]
        assert store.get('count') == 3

        with open(self.path, 'r', encoding='utf-8') as f:
            assert json.load(f) == {'count': 3, 'ids': [1, 2, 3]}

    def test_delete(self):
        """Test deleting keys."""
        store = JsonFileProgressStore(self.path)
        store.write('a', 1)
        store.write('b', 2)
        store.delete('a')

        assert store.get('a') is None
        assert store.get('b') == 2

    def test_no_temp_files_left(self):
        """Test writes do not leave temporary files behind."""
        store = JsonFileProgressStore(self.path)
        store.write('a', 1)
        store.write('a', 2)

        assert os.listdir(os.path.dirname(self.path)) == ['progress.json']

    def test_empty_file(self):
        """Test an empty file reads as no state."""
        os.makedirs(os.path.dirname(self.path))
        open(self.path, 'w').close()

        assert JsonFileProgressStore(self.path).get('a') is None

    def test_invalid_document(self):
        """Test a file that does not hold an object is rejected."""
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, 'w') as f:
            f.write('[1, 2]')

        with pytest.raises(ValueError):
            JsonFileProgressStore(self.path).get('a')


class TestStaticPermissionService:
    """Test the static permission service."""

    def test_capabilities(self):
        """Test granted and missing capabilities."""
        permissions = StaticPermissionService(['manage_affiliates'])
        assert permissions.current_user_can('manage_affiliates') is True
        assert permissions.current_user_can('manage_options') is False
        assert StaticPermissionService().current_user_can('manage_affiliates') is False
