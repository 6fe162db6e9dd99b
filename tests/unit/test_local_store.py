"""Unit tests for the on-device LocalStore."""

from plum.data.database import ASK_STEP_TTL_DAYS, LocalStore

DAY = 24 * 60 * 60


class TestAskStepCache:
    """Test cached step answers."""

    def test_round_trip(self, store):
        store.set_cached_answer("Pancakes", "Flip once", "Golden underneath.", "When?")
        assert store.get_cached_answer("Pancakes", "Flip once", "When?") == "Golden underneath."

    def test_default_question_is_separate_key(self, store):
        store.set_cached_answer("Pancakes", "Flip once", "Explain flip.")
        assert store.get_cached_answer("Pancakes", "Flip once") == "Explain flip."
        assert store.get_cached_answer("Pancakes", "Flip once", "When?") is None

    def test_entry_expires_after_ttl(self, store, clock):
        store.set_cached_answer("Pancakes", "Flip", "Now.")

        clock.advance(ASK_STEP_TTL_DAYS * DAY - 1)
        assert store.get_cached_answer("Pancakes", "Flip") == "Now."

        clock.advance(2)
        assert store.get_cached_answer("Pancakes", "Flip") is None

    def test_clear(self, store):
        store.set_cached_answer("Pancakes", "Flip", "Now.")
        store.clear_cached_answer("Pancakes", "Flip")
        assert store.get_cached_answer("Pancakes", "Flip") is None

    def test_blank_key_parts_miss(self, store):
        assert store.get_cached_answer("", "Flip") is None
        assert store.get_cached_answer("Pancakes", "") is None

    def test_persists_across_instances(self, temp_db_dir, clock):
        LocalStore(db_dir=temp_db_dir, clock=clock).set_cached_answer("Soup", "Simmer", "20 minutes.")
        assert LocalStore(db_dir=temp_db_dir, clock=clock).get_cached_answer("Soup", "Simmer") == "20 minutes."


class TestAskedMarkers:
    """Test once-per-card markers."""

    def test_mark_and_check(self, store):
        assert not store.has_been_asked("Soup", 2)
        store.mark_as_asked("Soup", 2)
        assert store.has_been_asked("Soup", 2)
        assert not store.has_been_asked("Soup", 3)

    def test_invalid_inputs_are_ignored(self, store):
        store.mark_as_asked("", 1)
        store.mark_as_asked("Soup", "1")
        assert not store.has_been_asked("", 1)
        assert not store.has_been_asked("Soup", "1")


class TestFeedbackOutbox:
    """Test the feedback outbox queue."""

    def test_enqueue_and_list_in_order(self, store):
        first = store.enqueue_feedback({"rating": 5})
        second = store.enqueue_feedback({"message": "More soups"})

        pending = store.pending_feedback()

        assert [p["id"] for p in pending] == [first, second]
        assert pending[0] == {"id": first, "payload": {"rating": 5}, "attempts": 1}

    def test_record_attempt_and_remove(self, store):
        outbox_id = store.enqueue_feedback({"rating": 3})
        store.record_feedback_attempt(outbox_id)
        assert store.pending_feedback()[0]["attempts"] == 2

        store.remove_feedback(outbox_id)
        assert store.pending_feedback() == []
