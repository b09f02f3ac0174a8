"""Tests for Cancellable and as_cancellable()."""

import gc

import pytest

from streamline import Cancellable, as_cancellable


class TestCancel:
    def test_runs_action_once(self):
        calls = []
        handle = Cancellable(lambda: calls.append(1))
        handle.cancel()
        handle.cancel()
        assert calls == [1]
        assert handle.cancelled

    def test_without_action(self):
        handle = Cancellable()
        handle.cancel()
        assert handle.cancelled

    def test_released_handle_cancels(self):
        calls = []
        handle = Cancellable(lambda: calls.append(1))
        del handle
        gc.collect()
        assert calls == [1]

    def test_store_adds_to_registry(self):
        registry = set()
        handle = Cancellable().store(registry)
        assert registry == {handle}

    def test_equality_is_identity(self):
        assert Cancellable() != Cancellable()


class TestAsCancellable:
    def test_passthrough(self):
        handle = Cancellable()
        assert as_cancellable(handle) is handle

    def test_none_is_inert(self):
        handle = as_cancellable(None)
        handle.cancel()
        assert handle.cancelled

    def test_disposer_function(self):
        calls = []
        as_cancellable(lambda: calls.append("disposed")).cancel()
        assert calls == ["disposed"]

    def test_object_with_cancel(self):
        class Task:
            cancelled = False

            def cancel(self):
                self.cancelled = True

        task = Task()
        as_cancellable(task).cancel()
        assert task.cancelled

    def test_object_with_dispose(self):
        class Reaction:
            disposed = False

            def dispose(self):
                self.disposed = True

        reaction = Reaction()
        as_cancellable(reaction).cancel()
        assert reaction.disposed

    def test_rejects_unusable(self):
        with pytest.raises(TypeError):
            as_cancellable(42)
