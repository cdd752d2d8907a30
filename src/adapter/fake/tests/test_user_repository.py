"""Unit tests for FakeUserRepository — verifies Port contract compliance."""

import threading
import unittest
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from adapter.fake.user_repository import FakeUserRepository
from domain.model.errors import DuplicateKeyError, ValidationError
from domain.model.user import ROLE_ADMIN, ROLE_USER, User

DEFAULT_LOGIN = 'testuser_repo'
DEFAULT_EMAIL = 'testuser_repo@localhost'
T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    """Manually advanced clock for created/modified dates."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


def make_user(**kwargs) -> User:
    defaults = {
        'login': DEFAULT_LOGIN,
        'email': DEFAULT_EMAIL,
        'password_hash': 'x' * 60,
        'first_name': 'Test',
        'last_name': 'User',
        'lang_key': 'en',
        'activated': True,
    }
    defaults.update(kwargs)
    return User(**defaults)


class TestFakeUserRepository(unittest.TestCase):
    """Tests that FakeUserRepository correctly implements UserRepository Protocol."""

    def setUp(self):
        self.clock = Clock()
        self.repo = FakeUserRepository(now=self.clock)

    # ── create ────────────────────────────────────────────────

    def test_create_assigns_id_and_audit_dates(self):
        user = self.repo.create(make_user())

        self.assertIsNotNone(user.id)
        self.assertEqual(user.created_date, T0)
        self.assertEqual(user.last_modified_date, T0)
        self.assertEqual(user.last_modified_by, 'system')
        self.assertEqual(self.repo.count(), 1)

    def test_create_rejects_duplicate_login(self):
        self.repo.create(make_user())

        with self.assertRaises(DuplicateKeyError) as ctx:
            self.repo.create(make_user(email='other@localhost'))
        self.assertEqual(ctx.exception.field, 'login')
        self.assertEqual(self.repo.count(), 1)

    def test_create_rejects_email_differing_only_in_case(self):
        self.repo.create(make_user())

        with self.assertRaises(DuplicateKeyError) as ctx:
            self.repo.create(make_user(login='other', email=DEFAULT_EMAIL.upper()))
        self.assertEqual(ctx.exception.field, 'email')

    def test_create_rejects_shared_activation_key(self):
        self.repo.create(make_user(activated=False, activation_key='AK1'))

        with self.assertRaises(DuplicateKeyError) as ctx:
            self.repo.create(make_user(login='other', email='other@localhost', activated=False, activation_key='AK1'))
        self.assertEqual(ctx.exception.field, 'activation_key')

    def test_create_rejects_activated_user_with_activation_key(self):
        with self.assertRaises(ValidationError):
            self.repo.create(make_user(activated=True, activation_key='AK1'))
        self.assertEqual(self.repo.count(), 0)

    def test_create_rejects_reset_key_without_reset_date(self):
        with self.assertRaises(ValidationError):
            self.repo.create(make_user(reset_key='RK1'))

    def test_created_date_never_goes_backwards(self):
        first = self.repo.create(make_user())
        self.clock.current = T0 - timedelta(hours=1)
        second = self.repo.create(make_user(login='later', email='later@localhost'))

        self.assertGreaterEqual(second.created_date, first.created_date)

    # ── update ────────────────────────────────────────────────

    def test_update_preserves_created_date(self):
        user = self.repo.create(make_user())
        self.clock.advance(days=1)

        updated = self.repo.update(replace(user, first_name='Changed', created_date=T0 + timedelta(days=5)))

        self.assertEqual(updated.first_name, 'Changed')
        self.assertEqual(updated.created_date, T0)
        self.assertEqual(updated.last_modified_date, T0 + timedelta(days=1))

    def test_update_returns_none_for_unknown_id(self):
        self.assertIsNone(self.repo.update(make_user(id='missing')))

    def test_update_rejects_login_taken_by_another_user(self):
        self.repo.create(make_user())
        other = self.repo.create(make_user(login='other', email='other@localhost'))

        with self.assertRaises(DuplicateKeyError):
            self.repo.update(replace(other, login=DEFAULT_LOGIN))
        self.assertEqual(self.repo.find_by_login('other').id, other.id)

    def test_update_moves_email_index(self):
        user = self.repo.create(make_user())
        self.repo.update(replace(user, email='New@Localhost'))

        self.assertIsNone(self.repo.find_by_email_ignore_case(DEFAULT_EMAIL))
        self.assertEqual(self.repo.find_by_email_ignore_case('new@localhost').id, user.id)

    # ── key lookups ───────────────────────────────────────────

    def test_find_by_activation_key(self):
        self.repo.create(make_user(activated=False, activation_key='activation-key-123'))

        found = self.repo.find_by_activation_key('activation-key-123')
        self.assertIsNotNone(found)
        self.assertEqual(found.login, DEFAULT_LOGIN)

    def test_find_by_activation_key_returns_none_for_invalid_key(self):
        self.repo.create(make_user(activated=False, activation_key='activation-key-123'))
        self.assertIsNone(self.repo.find_by_activation_key('invalid-key'))

    def test_find_by_activation_key_returns_none_after_key_cleared(self):
        user = self.repo.create(make_user(activated=False, activation_key='AK1'))
        self.repo.update(replace(user, activated=True, activation_key=None))

        self.assertIsNone(self.repo.find_by_activation_key('AK1'))

    def test_find_by_reset_key(self):
        self.repo.create(make_user(reset_key='reset-key-123', reset_date=T0))

        found = self.repo.find_by_reset_key('reset-key-123')
        self.assertIsNotNone(found)
        self.assertEqual(found.login, DEFAULT_LOGIN)
        self.assertIsNone(self.repo.find_by_reset_key('invalid-key'))

    def test_find_by_reset_key_returns_none_after_key_cleared(self):
        user = self.repo.create(make_user(reset_key='RK1', reset_date=T0))
        self.repo.update(replace(user, reset_key=None, reset_date=None))

        self.assertIsNone(self.repo.find_by_reset_key('RK1'))

    def test_find_by_login_is_case_sensitive(self):
        self.repo.create(make_user())

        self.assertEqual(self.repo.find_by_login(DEFAULT_LOGIN).login, DEFAULT_LOGIN)
        self.assertIsNone(self.repo.find_by_login(DEFAULT_LOGIN.upper()))
        self.assertIsNone(self.repo.find_by_login('nonexistent'))

    def test_find_by_email_ignore_case_matches_any_casing(self):
        created = self.repo.create(make_user(email='Alice@Example.com'))

        for candidate in ('Alice@Example.com', 'ALICE@EXAMPLE.COM', 'alice@example.com'):
            found = self.repo.find_by_email_ignore_case(candidate)
            self.assertIsNotNone(found, candidate)
            self.assertEqual(found.id, created.id)
            self.assertEqual(found.email, 'Alice@Example.com')

    def test_find_by_email_ignore_case_matches_non_ascii_casing(self):
        created = self.repo.create(make_user(email='straße@example.de'))

        found = self.repo.find_by_email_ignore_case('straße@example.de'.upper())
        self.assertIsNotNone(found)
        self.assertEqual(found.id, created.id)
        self.assertEqual(found.email, 'straße@example.de')

    def test_find_by_email_ignore_case_none_returns_none(self):
        self.repo.create(make_user())
        self.assertIsNone(self.repo.find_by_email_ignore_case(None))

    def test_find_by_email_ignore_case_returns_none_for_nonexistent(self):
        self.repo.create(make_user())
        self.assertIsNone(self.repo.find_by_email_ignore_case('nonexistent@example.com'))

    def test_plain_lookup_does_not_load_authorities(self):
        self.repo.create(make_user(authorities=frozenset({ROLE_USER})))
        self.assertIsNone(self.repo.find_by_login(DEFAULT_LOGIN).authorities)

    def test_find_with_authorities_by_login(self):
        self.repo.create(make_user(authorities=frozenset({ROLE_USER})))

        found = self.repo.find_with_authorities_by_login(DEFAULT_LOGIN)
        self.assertEqual(found.authorities, frozenset({ROLE_USER}))

    def test_find_with_authorities_by_email_ignore_case(self):
        self.repo.create(make_user(authorities=frozenset({ROLE_USER, ROLE_ADMIN})))

        found = self.repo.find_with_authorities_by_email_ignore_case(DEFAULT_EMAIL.upper())
        self.assertEqual(found.authorities, frozenset({ROLE_USER, ROLE_ADMIN}))

    def test_find_with_authorities_returns_empty_set_not_none(self):
        self.repo.create(make_user())
        self.assertEqual(self.repo.find_with_authorities_by_login(DEFAULT_LOGIN).authorities, frozenset())

    def test_find_with_authorities_returns_none_when_absent(self):
        self.assertIsNone(self.repo.find_with_authorities_by_login('nobody'))
        self.assertIsNone(self.repo.find_with_authorities_by_email_ignore_case('nobody@localhost'))

    def test_update_without_loaded_authorities_keeps_them(self):
        user = self.repo.create(make_user(authorities=frozenset({ROLE_USER})))
        self.repo.update(replace(self.repo.get_by_id(user.id), first_name='Changed'))

        self.assertEqual(self.repo.find_with_authorities_by_login(DEFAULT_LOGIN).authorities, frozenset({ROLE_USER}))

    # ── stale unactivated ─────────────────────────────────────

    def test_find_stale_unactivated_includes_old_registration(self):
        user = self.repo.create(make_user(activated=False, activation_key='activation-key'))

        found = self.repo.find_stale_unactivated(user.created_date + timedelta(days=1))
        self.assertIn(DEFAULT_LOGIN, [u.login for u in found])

    def test_find_stale_unactivated_empty_for_recent_registration(self):
        user = self.repo.create(make_user(activated=False, activation_key='activation-key'))

        self.assertEqual(self.repo.find_stale_unactivated(user.created_date - timedelta(seconds=1)), [])
        # strictly before: equal created_date is excluded
        self.assertEqual(self.repo.find_stale_unactivated(user.created_date), [])

    def test_find_stale_unactivated_returns_exact_matching_set(self):
        self.repo.create(make_user(login='pending', email='p@localhost', activated=False, activation_key='AK1'))
        self.repo.create(make_user(login='no-key', email='n@localhost', activated=False))
        self.repo.create(make_user(login='active', email='a@localhost', activated=True))

        found = self.repo.find_stale_unactivated(T0 + timedelta(days=1))
        self.assertEqual([u.login for u in found], ['pending'])

    def test_find_stale_unactivated_grows_with_cutoff(self):
        for i in range(5):
            self.repo.create(make_user(login=f'u{i}', email=f'u{i}@localhost', activated=False, activation_key=f'AK{i}'))
            self.clock.advance(hours=1)

        sizes = [len(self.repo.find_stale_unactivated(T0 + timedelta(minutes=m))) for m in range(0, 360, 30)]
        self.assertEqual(sizes, sorted(sizes))
        self.assertEqual(sizes[0], 0)
        self.assertEqual(sizes[-1], 5)

    def test_find_stale_unactivated_reads_naive_before_as_utc(self):
        self.repo.create(make_user(activated=False, activation_key='AK1'))

        self.assertEqual(len(self.repo.find_stale_unactivated(datetime(2026, 1, 2, 12, 0))), 1)
        self.assertEqual(self.repo.find_stale_unactivated(datetime(2026, 1, 1, 12, 0)), [])

    def test_naive_clock_stores_utc_dates(self):
        repo = FakeUserRepository(now=lambda: datetime(2026, 1, 1, 12, 0))
        user = repo.create(make_user(activated=False, activation_key='AK1'))

        self.assertEqual(user.created_date, T0)
        self.assertEqual(repo.update(replace(user, first_name='Changed')).last_modified_date, T0)
        self.assertEqual(len(repo.find_stale_unactivated(T0 + timedelta(days=1))), 1)

    # ── list_activated ────────────────────────────────────────

    def test_list_activated_includes_activated_user(self):
        self.repo.create(make_user(activated=True))

        page = self.repo.list_activated(page=0, size=10)
        self.assertIn(DEFAULT_LOGIN, [u.login for u in page.items])

    def test_list_activated_excludes_non_activated(self):
        self.repo.create(make_user(activated=False))

        page = self.repo.list_activated(page=0, size=10)
        self.assertNotIn(DEFAULT_LOGIN, [u.login for u in page.items])
        self.assertEqual(page.total, 0)

    def test_list_activated_pages_cover_activated_set_once(self):
        activated_ids = set()
        for i in range(23):
            user = self.repo.create(make_user(login=f'u{i}', email=f'u{i}@localhost', activated=i % 3 != 0))
            if user.activated:
                activated_ids.add(user.id)

        seen = []
        page_index = 0
        while True:
            page = self.repo.list_activated(page=page_index, size=4)
            seen.extend(u.id for u in page.items)
            if not page.has_next:
                break
            page_index += 1

        self.assertEqual(len(seen), len(set(seen)))
        self.assertEqual(set(seen), activated_ids)
        self.assertEqual(seen, sorted(seen))

    def test_list_activated_is_reproducible(self):
        for i in range(6):
            self.repo.create(make_user(login=f'u{i}', email=f'u{i}@localhost'))

        first = self.repo.list_activated(page=1, size=2)
        second = self.repo.list_activated(page=1, size=2)
        self.assertEqual([u.id for u in first.items], [u.id for u in second.items])

    def test_list_activated_rejects_invalid_page_request(self):
        with self.assertRaises(ValidationError):
            self.repo.list_activated(page=-1, size=10)
        with self.assertRaises(ValidationError):
            self.repo.list_activated(page=0, size=0)

    def test_list_all_includes_unactivated(self):
        self.repo.create(make_user(activated=False))
        self.assertEqual(self.repo.list_all().total, 1)

    # ── delete ────────────────────────────────────────────────

    def test_delete_removes_user_from_every_query(self):
        user = self.repo.create(make_user(
            activated=False, activation_key='AK1', reset_key='RK1', reset_date=T0,
            authorities=frozenset({ROLE_USER}),
        ))

        self.assertTrue(self.repo.delete(user.id))

        self.assertIsNone(self.repo.get_by_id(user.id))
        self.assertIsNone(self.repo.find_by_login(DEFAULT_LOGIN))
        self.assertIsNone(self.repo.find_by_email_ignore_case(DEFAULT_EMAIL))
        self.assertIsNone(self.repo.find_by_activation_key('AK1'))
        self.assertIsNone(self.repo.find_by_reset_key('RK1'))
        self.assertIsNone(self.repo.find_with_authorities_by_login(DEFAULT_LOGIN))
        self.assertEqual(self.repo.find_stale_unactivated(T0 + timedelta(days=1)), [])
        self.assertEqual(self.repo.list_all().total, 0)

    def test_repeated_delete_returns_false(self):
        user = self.repo.create(make_user())

        self.assertTrue(self.repo.delete(user.id))
        self.assertFalse(self.repo.delete(user.id))

    def test_delete_frees_unique_keys(self):
        user = self.repo.create(make_user())
        self.repo.delete(user.id)

        recreated = self.repo.create(make_user())
        self.assertNotEqual(recreated.id, user.id)

    # ── end-to-end scenario ───────────────────────────────────

    def test_activation_lifecycle(self):
        alice = self.repo.create(make_user(
            login='alice', email='Alice@Example.com', activated=False, activation_key='AK1',
        ))
        one_day_later = T0 + timedelta(days=1)

        self.assertEqual(self.repo.find_by_activation_key('AK1').id, alice.id)
        self.assertEqual(self.repo.find_by_email_ignore_case('alice@example.com').id, alice.id)
        self.assertIn(alice.id, [u.id for u in self.repo.find_stale_unactivated(one_day_later)])

        self.repo.update(replace(alice, activated=True, activation_key=None))

        self.assertNotIn(alice.id, [u.id for u in self.repo.find_stale_unactivated(one_day_later)])
        self.assertIn(alice.id, [u.id for u in self.repo.list_activated(page=0, size=10).items])

    # ── concurrency ───────────────────────────────────────────

    def test_concurrent_creates_keep_login_unique(self):
        errors = []
        created = []

        def register(n):
            try:
                created.append(self.repo.create(make_user(login='racer', email=f'racer{n}@localhost')))
            except DuplicateKeyError as e:
                errors.append(e)

        threads = [threading.Thread(target=register, args=(n,)) for n in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(created), 1)
        self.assertEqual(len(errors), 15)
        self.assertEqual(self.repo.count(), 1)


if __name__ == '__main__':
    unittest.main()
