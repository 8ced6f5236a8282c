import threading
import unittest

from cpauth.store import ChallengeSession, ChallengeStore, Credential, CredentialStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestCredentialStore(unittest.TestCase):
    def test_last_write_wins(self) -> None:
        store = CredentialStore()
        store.put(Credential(user_name="alice", y1=2, y2=3))
        store.put(Credential(user_name="alice", y1=4, y2=5))
        self.assertEqual(store.get("alice"), Credential(user_name="alice", y1=4, y2=5))
        self.assertEqual(len(store), 1)
        self.assertIn("alice", store)
        self.assertIsNone(store.get("bob"))

    def test_concurrent_writers(self) -> None:
        store = CredentialStore()

        def writer(prefix: str) -> None:
            for index in range(200):
                store.put(Credential(user_name=f"{prefix}-{index}", y1=index, y2=index))

        threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(store), 8 * 200)


class TestChallengeStore(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.store = ChallengeStore(ttl=30, clock=self.clock)

    def _session(self, user_name: str = "alice") -> ChallengeSession:
        return ChallengeSession(user_name=user_name, r1=8, r2=4, c=4, created_at=self.clock())

    def test_pop_consumes(self) -> None:
        session = self._session()
        self.store.add("auth-1", session)
        self.assertIn("auth-1", self.store)
        self.assertEqual(self.store.pop("auth-1"), session)
        self.assertIsNone(self.store.pop("auth-1"))
        self.assertNotIn("auth-1", self.store)

    def test_duplicate_id_rejected(self) -> None:
        self.store.add("auth-1", self._session())
        with self.assertRaises(KeyError):
            self.store.add("auth-1", self._session("bob"))

    def test_expired_session_is_absent(self) -> None:
        self.store.add("auth-1", self._session())
        self.clock.now += 30
        self.assertNotIn("auth-1", self.store)
        self.assertIsNone(self.store.pop("auth-1"))

    def test_purge(self) -> None:
        self.store.add("old", self._session())
        self.clock.now += 20
        self.store.add("new", self._session())
        self.clock.now += 15
        self.assertEqual(self.store.purge_expired(), 1)
        self.assertEqual(len(self.store), 1)
        self.assertIn("new", self.store)

    def test_add_purges_stale_entries(self) -> None:
        self.store.add("old", self._session())
        self.clock.now += 60
        self.store.add("new", self._session())
        self.assertEqual(len(self.store), 1)

    def test_purge_stops_at_first_live_session(self) -> None:
        self.store.add("young", ChallengeSession(user_name="a", r1=1, r2=1, c=1, created_at=self.clock() + 20))
        self.store.add("old", self._session())
        self.clock.now += 40
        # Only the leading run of expired sessions is swept.
        self.assertEqual(self.store.purge_expired(), 0)
        self.assertEqual(len(self.store), 2)
        self.assertIsNone(self.store.pop("old"))
        self.clock.now += 20
        self.assertEqual(self.store.purge_expired(), 1)
        self.assertEqual(len(self.store), 0)

    def test_invalid_ttl(self) -> None:
        with self.assertRaises(ValueError):
            ChallengeStore(ttl=0)


if __name__ == "__main__":
    unittest.main()
