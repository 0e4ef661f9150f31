"""
Test suite for ElectionStore

Covers persistence across restarts, voter-roll uniqueness, ballot recording
and election reset against a real SQLite file.

Run with: python -m unittest tests.test_election_store
"""

import os
import shutil
import tempfile
import unittest

from database.base import CANDIDATES_KEY, VOTERS_KEY
from database.db import ElectionDatabase
from database.memory import MemoryStorage
from election.store import ElectionStore
from exceptions import (
    AlreadyVotedError,
    DatabaseError,
    NotRegisteredError,
    ValidationError,
)


class FailingStorage(MemoryStorage):
    """Memory storage whose writes can be switched off"""

    def __init__(self):
        super().__init__()
        self.fail = False

    def set_many(self, values):
        if self.fail:
            raise DatabaseError("disk full")
        super().set_many(values)


class TestElectionStorePersistence(unittest.TestCase):
    """Store backed by SQLite; reopening must see the same election"""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.tmpdir, "election.db")
        self.db = ElectionDatabase(self.db_path)
        self.store = ElectionStore(self.db)

    def tearDown(self):
        self.db.close()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def reopen(self) -> ElectionStore:
        self.db.close()
        self.db = ElectionDatabase(self.db_path)
        return ElectionStore(self.db)

    def test_candidates_and_voters_survive_restart(self):
        """Candidates, voters and tallies are reloaded from disk"""
        a = self.store.add_candidate("Ana")
        b = self.store.add_candidate("Bruno")
        self.store.add_voters(["x@y.com", "z@y.com"])
        self.store.record_ballot("x@y.com", [a.id])

        store = self.reopen()

        self.assertEqual([c.name for c in store.candidates()], ["Ana", "Bruno"])
        self.assertEqual(store.get_candidate(a.id).votes, 1)
        self.assertEqual(store.get_candidate(b.id).votes, 0)
        self.assertTrue(store.get_voter("x@y.com").has_voted)
        self.assertFalse(store.get_voter("z@y.com").has_voted)

    def test_persisted_format_uses_fixed_keys(self):
        """Lists are stored under 'candidates' and 'voters' in the browser format"""
        candidate = self.store.add_candidate("Ana")
        self.store.add_voters("X@Y.com")

        self.assertEqual(self.db.get(CANDIDATES_KEY), [{"id": candidate.id, "name": "Ana", "votes": 0}])
        self.assertEqual(self.db.get(VOTERS_KEY), [{"email": "x@y.com", "hasVoted": False}])

    def test_empty_database_is_empty_election(self):
        self.assertEqual(self.store.candidates(), [])
        self.assertEqual(self.store.voters(), [])
        self.assertEqual(self.store.stats()["turnout"], 0.0)

    def test_corrupt_value_loads_as_empty(self):
        """A non-JSON stored value is treated as missing"""
        self.db.conn.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?)", (CANDIDATES_KEY, "{not json")
        )
        self.db.conn.commit()

        store = self.reopen()
        self.assertEqual(store.candidates(), [])

    def test_legacy_records_are_loaded(self):
        """Records written by the browser app load unchanged; bad ones are skipped"""
        self.db.set_many({
            CANDIDATES_KEY: [
                {"id": "c1", "name": "Ana", "votes": 3},
                {"id": "c2", "name": ""},
            ],
            VOTERS_KEY: [
                {"email": "A@B.com", "hasVoted": True},
                {"email": "a@b.com", "hasVoted": False},
                {"hasVoted": False},
            ],
        })

        store = self.reopen()

        self.assertEqual([c.id for c in store.candidates()], ["c1"])
        self.assertEqual(store.get_candidate("c1").votes, 3)
        self.assertEqual(len(store.voters()), 1)
        self.assertTrue(store.get_voter("a@b.com").has_voted)

    def test_non_boolean_voted_flag_is_skipped(self):
        """A string "false" is not read as voted; the record is dropped as malformed"""
        self.db.set_many({
            VOTERS_KEY: [
                {"email": "a@b.com", "hasVoted": "false"},
                {"email": "c@d.com", "hasVoted": 1},
                {"email": "e@f.com", "hasVoted": False},
                {"email": "g@h.com"},
            ],
        })

        store = self.reopen()

        self.assertEqual([v.email for v in store.voters()], ["e@f.com", "g@h.com"])
        self.assertIsNone(store.get_voter("a@b.com"))


class TestCandidateOperations(unittest.TestCase):

    def setUp(self):
        self.store = ElectionStore(MemoryStorage())

    def test_add_candidate_trims_and_starts_at_zero(self):
        candidate = self.store.add_candidate("  Ana  ")
        self.assertEqual(candidate.name, "Ana")
        self.assertEqual(candidate.votes, 0)

    def test_add_candidate_rejects_blank_name(self):
        for name in ["", "   ", None]:
            with self.subTest(name=name):
                with self.assertRaises(ValidationError):
                    self.store.add_candidate(name)
        self.assertEqual(self.store.candidates(), [])

    def test_candidate_ids_are_unique(self):
        ids = {self.store.add_candidate("Same Name").id for _ in range(20)}
        self.assertEqual(len(ids), 20)

    def test_remove_candidate(self):
        a = self.store.add_candidate("Ana")
        b = self.store.add_candidate("Bruno")

        self.assertTrue(self.store.remove_candidate(a.id))
        self.assertEqual([c.id for c in self.store.candidates()], [b.id])

    def test_remove_unknown_candidate_is_noop(self):
        self.store.add_candidate("Ana")
        self.assertFalse(self.store.remove_candidate("missing"))
        self.assertEqual(len(self.store.candidates()), 1)

    def test_returned_candidates_are_copies(self):
        a = self.store.add_candidate("Ana")
        self.store.candidates()[0].votes = 99
        self.assertEqual(self.store.get_candidate(a.id).votes, 0)


class TestVoterOperations(unittest.TestCase):

    def setUp(self):
        self.store = ElectionStore(MemoryStorage())

    def test_add_voters_counts_only_new(self):
        """Duplicates (case-insensitive) and blank lines are skipped"""
        added = self.store.add_voters(["a@b.com", "A@B.com", "", "  c@d.com  "])
        self.assertEqual(added, 2)
        self.assertEqual([v.email for v in self.store.voters()], ["a@b.com", "c@d.com"])

    def test_add_voters_from_textarea_block(self):
        added = self.store.add_voters("a@b.com\r\nc@d.com\n\n")
        self.assertEqual(added, 2)

    def test_re_adding_existing_voter_keeps_flag(self):
        """Re-registering someone who voted does not give them a new ballot"""
        c = self.store.add_candidate("Ana")
        self.store.add_voters("a@b.com")
        self.store.record_ballot("a@b.com", [c.id])

        self.assertEqual(self.store.add_voters("A@B.COM"), 0)
        self.assertTrue(self.store.get_voter("a@b.com").has_voted)

    def test_get_voter_is_case_insensitive(self):
        self.store.add_voters("Someone@Example.org")
        self.assertIsNotNone(self.store.get_voter(" SOMEONE@example.ORG "))
        self.assertIsNone(self.store.get_voter("nobody@example.org"))

    def test_no_write_when_nothing_added(self):
        storage = MemoryStorage()
        store = ElectionStore(storage)
        store.add_voters("a@b.com")
        writes = storage.writes

        store.add_voters(["a@b.com", ""])
        self.assertEqual(storage.writes, writes)


class TestBallotRecording(unittest.TestCase):

    def setUp(self):
        self.store = ElectionStore(MemoryStorage())
        self.a = self.store.add_candidate("Ana")
        self.b = self.store.add_candidate("Bruno")
        self.store.add_voters(["x@y.com", "z@y.com"])

    def test_ballot_increments_each_selection_once(self):
        counted = self.store.record_ballot("x@y.com", [self.a.id, self.b.id, self.a.id])

        self.assertEqual(counted, [self.a.id, self.b.id])
        self.assertEqual(self.store.get_candidate(self.a.id).votes, 1)
        self.assertEqual(self.store.get_candidate(self.b.id).votes, 1)
        self.assertTrue(self.store.get_voter("x@y.com").has_voted)

    def test_second_ballot_rejected(self):
        self.store.record_ballot("x@y.com", [self.a.id])
        with self.assertRaises(AlreadyVotedError):
            self.store.record_ballot("X@y.com", [self.b.id])
        self.assertEqual(self.store.get_candidate(self.b.id).votes, 0)

    def test_unregistered_voter_rejected(self):
        with self.assertRaises(NotRegisteredError):
            self.store.record_ballot("stranger@y.com", [self.a.id])

    def test_empty_ballot_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.record_ballot("x@y.com", [])
        self.assertFalse(self.store.get_voter("x@y.com").has_voted)

    def test_removed_candidate_ids_are_ignored(self):
        """Selections pointing at deleted candidates count for nobody"""
        self.store.remove_candidate(self.b.id)

        counted = self.store.record_ballot("x@y.com", [self.a.id, self.b.id])

        self.assertEqual(counted, [self.a.id])
        self.assertEqual(self.store.get_candidate(self.a.id).votes, 1)
        self.assertTrue(self.store.get_voter("x@y.com").has_voted)

    def test_ballot_of_only_removed_candidates_rejected(self):
        """A ballot that would count nobody is refused and the voter can still vote"""
        self.store.remove_candidate(self.a.id)
        self.store.remove_candidate(self.b.id)
        writes = self.store.storage.writes

        with self.assertRaises(ValidationError):
            self.store.record_ballot("x@y.com", [self.a.id, self.b.id])

        self.assertFalse(self.store.get_voter("x@y.com").has_voted)
        self.assertEqual(self.store.storage.writes, writes)

    def test_failed_write_changes_nothing(self):
        """Counts and the voter flag are applied together or not at all"""
        storage = FailingStorage()
        store = ElectionStore(storage)
        a = store.add_candidate("Ana")
        store.add_voters("x@y.com")

        storage.fail = True
        with self.assertRaises(DatabaseError):
            store.record_ballot("x@y.com", [a.id])

        self.assertEqual(store.get_candidate(a.id).votes, 0)
        self.assertFalse(store.get_voter("x@y.com").has_voted)

        storage.fail = False
        store.record_ballot("x@y.com", [a.id])
        self.assertEqual(store.get_candidate(a.id).votes, 1)


class TestResetElection(unittest.TestCase):

    def setUp(self):
        self.store = ElectionStore(MemoryStorage())
        self.a = self.store.add_candidate("Ana")
        self.store.add_voters(["x@y.com", "z@y.com"])
        self.store.record_ballot("x@y.com", [self.a.id])

    def test_reset_clears_votes_and_flags(self):
        self.store.reset_election()

        self.assertEqual(self.store.get_candidate(self.a.id).votes, 0)
        self.assertTrue(all(not v.has_voted for v in self.store.voters()))
        # Candidates and voters themselves are kept
        self.assertEqual(len(self.store.candidates()), 1)
        self.assertEqual(len(self.store.voters()), 2)

    def test_reset_is_idempotent(self):
        self.store.reset_election()
        first = ([c.to_dict() for c in self.store.candidates()], [v.to_dict() for v in self.store.voters()])
        self.store.reset_election()
        second = ([c.to_dict() for c in self.store.candidates()], [v.to_dict() for v in self.store.voters()])
        self.assertEqual(first, second)

    def test_voter_can_vote_again_after_reset(self):
        self.store.reset_election()
        self.store.record_ballot("x@y.com", [self.a.id])
        self.assertEqual(self.store.get_candidate(self.a.id).votes, 1)

    def test_stats(self):
        stats = self.store.stats()
        self.assertEqual(stats, {
            "candidates": 1,
            "voters": 2,
            "voted": 1,
            "pending": 1,
            "turnout": 50.0,
        })


if __name__ == "__main__":
    unittest.main()
