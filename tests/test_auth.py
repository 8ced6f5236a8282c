import secrets
import threading
import unittest
from typing import Iterable, List, Sequence

from cpauth.auth import AuthService
from cpauth.client import LocalChannel, Prover, secret_from_password
from cpauth.crypto import commit, reference_group, respond, toy_group
from cpauth.errors import UnknownSession, UnknownUser, VerificationFailed
from cpauth.store import ChallengeSession, ChallengeStore


class ScriptedRandom:
    """Replays fixed exponents; identifiers stay random so they never collide."""

    def __init__(self, values: Iterable[int]) -> None:
        self._values: List[int] = list(values)

    def randbelow(self, upper: int) -> int:
        value = self._values.pop(0)
        if not 0 <= value < upper:
            raise ValueError(f"scripted value {value} outside [0, {upper})")
        return value

    def choice(self, population: Sequence[str]) -> str:
        return secrets.choice(population)


class TestToyService(unittest.TestCase):
    def setUp(self) -> None:
        self.params = toy_group()
        self.service = AuthService(self.params, rng=ScriptedRandom([4, 4]))

    def test_worked_example(self) -> None:
        self.service.register("alice", 2, 3)
        issued = self.service.create_challenge("alice", 8, 4)
        self.assertEqual(issued.c, 4)
        self.assertEqual(len(issued.auth_id), 48)
        token = self.service.verify(issued.auth_id, 5)
        self.assertEqual(len(token), 48)

    def test_wrong_answer(self) -> None:
        self.service.register("alice", 2, 3)
        issued = self.service.create_challenge("alice", 8, 4)
        s_fake = respond(self.params, 7, issued.c, 7)
        with self.assertRaises(VerificationFailed):
            self.service.verify(issued.auth_id, s_fake)

    def test_session_is_single_use(self) -> None:
        self.service.register("alice", 2, 3)
        issued = self.service.create_challenge("alice", 8, 4)
        with self.assertRaises(VerificationFailed):
            self.service.verify(issued.auth_id, 6)
        with self.assertRaises(UnknownSession):
            self.service.verify(issued.auth_id, 5)

    def test_deterministic_prover(self) -> None:
        prover = Prover(self.params, secret=6, rng=ScriptedRandom([7]))
        channel = LocalChannel(self.service)
        prover.register(channel, "alice")
        self.assertEqual(self.service.credentials.get("alice").y1, 2)
        token = prover.login(channel, "alice")
        self.assertEqual(len(token), 48)


class TestAuthService(unittest.TestCase):
    def setUp(self) -> None:
        self.params = reference_group(1024)
        self.service = AuthService(self.params)
        self.channel = LocalChannel(self.service)

    def test_challenge_for_unknown_user(self) -> None:
        with self.assertRaises(UnknownUser) as ctx:
            self.service.create_challenge("nobody", 1, 1)
        self.assertIn("nobody", str(ctx.exception))

    def test_verify_unknown_session(self) -> None:
        with self.assertRaises(UnknownSession):
            self.service.verify(secrets.token_hex(24), 1)

    def test_repeated_logins(self) -> None:
        prover = Prover(self.params, secret_from_password("correct horse"))
        prover.register(self.channel, "alice")
        tokens = {prover.login(self.channel, "alice") for _ in range(5)}
        self.assertEqual(len(tokens), 5)

    def test_login_with_wrong_password(self) -> None:
        Prover(self.params, secret_from_password("right")).register(self.channel, "alice")
        impostor = Prover(self.params, secret_from_password("wrong"))
        with self.assertRaises(VerificationFailed):
            impostor.login(self.channel, "alice")

    def test_interleaved_challenges(self) -> None:
        x = secret_from_password("pw")
        self.service.register("alice", *commit(self.params, x))

        k1, k2 = 111, 222
        first = self.service.create_challenge("alice", *commit(self.params, k1))
        second = self.service.create_challenge("alice", *commit(self.params, k2))
        self.assertNotEqual(first.auth_id, second.auth_id)

        self.service.verify(second.auth_id, respond(self.params, k2, second.c, x))
        self.service.verify(first.auth_id, respond(self.params, k1, first.c, x))

    def test_reregistration_overwrites(self) -> None:
        old = Prover(self.params, secret_from_password("old"))
        new = Prover(self.params, secret_from_password("new"))
        old.register(self.channel, "alice")
        old.login(self.channel, "alice")

        new.register(self.channel, "alice")
        new.login(self.channel, "alice")
        with self.assertRaises(VerificationFailed):
            old.login(self.channel, "alice")

    def test_credential_replaced_between_phases(self) -> None:
        x = secret_from_password("old")
        self.service.register("alice", *commit(self.params, x))
        k = 4242
        issued = self.service.create_challenge("alice", *commit(self.params, k))
        self.service.register("alice", *commit(self.params, secret_from_password("new")))
        with self.assertRaises(VerificationFailed):
            self.service.verify(issued.auth_id, respond(self.params, k, issued.c, x))

    def test_session_without_credential(self) -> None:
        self.service.challenges.add(
            "orphan",
            ChallengeSession(user_name="ghost", r1=1, r2=1, c=1, created_at=self.service.challenges.now()),
        )
        with self.assertRaises(UnknownUser):
            self.service.verify("orphan", 0)

    def test_expired_challenge(self) -> None:
        now = [0.0]
        service = AuthService(self.params, challenges=ChallengeStore(ttl=10, clock=lambda: now[0]))
        x = secret_from_password("pw")
        service.register("alice", *commit(self.params, x))
        issued = service.create_challenge("alice", *commit(self.params, 99))
        now[0] = 11.0
        with self.assertRaises(UnknownSession):
            service.verify(issued.auth_id, respond(self.params, 99, issued.c, x))

    def test_concurrent_users(self) -> None:
        errors: List[BaseException] = []
        tokens: List[str] = []
        lock = threading.Lock()

        def session(index: int) -> None:
            user_name = f"user-{index}"
            prover = Prover(self.params, secret_from_password(f"password-{index}"))
            try:
                prover.register(self.channel, user_name)
                for _ in range(3):
                    token = prover.login(self.channel, user_name)
                    with lock:
                        tokens.append(token)
                if index % 2:
                    # A bad request must not disturb anyone else.
                    with self.assertRaises(UnknownSession):
                        self.service.verify("bogus", 0)
            except BaseException as exc:  # surfaced by the assertion below
                with lock:
                    errors.append(exc)

        threads = [threading.Thread(target=session, args=(index,)) for index in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(set(tokens)), 8 * 3)
        self.assertEqual(len(self.service.challenges), 0)


if __name__ == "__main__":
    unittest.main()
