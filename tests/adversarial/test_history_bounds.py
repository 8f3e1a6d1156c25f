"""Adversarial tests: history stacks under oversized and duplicate-laden input.

The Stage histories must never grow past ``MAX_HISTORY_DEPTH`` and must
survive serialization no matter how they are driven.
"""

from __future__ import annotations

from freightline.models.history import (
    MAX_HISTORY_DEPTH,
    FreightReference,
    FreightReferenceStack,
    VerificationInfo,
    VerificationInfoStack,
    VerificationPhase,
)
from freightline.models.stage import Stage


def _refs(*names: str) -> list[FreightReference]:
    return [FreightReference(name=n) for n in names]


class TestOversizedInput:
    def test_single_push_larger_than_bound(self):
        stack = FreightReferenceStack()
        stack.push(*_refs(*(f"f{i}" for i in range(25))))
        assert len(stack) == MAX_HISTORY_DEPTH
        # The first items given are the newest and survive.
        assert [r.name for r in stack] == [f"f{i}" for i in range(MAX_HISTORY_DEPTH)]

    def test_update_or_push_larger_than_bound(self):
        stack = VerificationInfoStack()
        stack.update_or_push(*(VerificationInfo(id=f"v{i}") for i in range(15)))
        assert len(stack) == MAX_HISTORY_DEPTH
        assert stack[0].id == "v0"

    def test_many_single_pushes_stay_bounded(self):
        stack = FreightReferenceStack()
        for i in range(100):
            stack.push(FreightReference(name=f"f{i}"))
            assert len(stack) <= MAX_HISTORY_DEPTH
        assert stack[0].name == "f99"
        assert stack[-1].name == "f90"

    def test_deserializing_oversized_history_keeps_data(self):
        stack = FreightReferenceStack.model_validate([{"name": f"f{i}"} for i in range(12)])
        assert len(stack) == 12
        stack.push(FreightReference(name="new"))
        assert len(stack) == MAX_HISTORY_DEPTH
        assert stack[0].name == "new"


class TestDuplicateKeys:
    def test_push_keeps_repeats(self):
        stack = FreightReferenceStack()
        stack.push(*_refs("a", "a", "a"))
        assert [r.name for r in stack] == ["a", "a", "a"]

    def test_update_or_push_collapses_existing_repeats(self):
        stack = FreightReferenceStack()
        stack.push(*_refs("a", "b", "a", "c", "a"))
        stack.update_or_push(FreightReference(name="a"))
        assert [r.name for r in stack] == ["a", "b", "c"]

    def test_update_moves_entry_to_front(self):
        stack = VerificationInfoStack()
        stack.update_or_push(VerificationInfo(id="a"), VerificationInfo(id="b"))
        stack.update_or_push(VerificationInfo(id="b", phase=VerificationPhase.FAILED))
        assert [(v.id, v.phase) for v in stack] == [
            ("b", VerificationPhase.FAILED),
            ("a", None),
        ]

    def test_empty_key_is_a_key_like_any_other(self):
        stack = VerificationInfoStack()
        stack.update_or_push(VerificationInfo(), VerificationInfo(id="x"))
        stack.update_or_push(VerificationInfo(message="again"))
        assert [(v.id, v.message) for v in stack] == [("", "again"), ("x", "")]


class TestEmptyAndRoundTrip:
    def test_pop_until_empty(self):
        stack = FreightReferenceStack()
        stack.push(*_refs("a", "b"))
        assert stack.pop()[0].name == "a"
        assert stack.pop()[0].name == "b"
        item, found = stack.pop()
        assert not found
        assert item == FreightReference()

    def test_top_returns_a_copy(self):
        stack = VerificationInfoStack()
        stack.push(VerificationInfo(id="v1"))
        top, _ = stack.top()
        assert top == stack[0]
        assert top is not stack[0]

    def test_null_histories_load_as_empty(self):
        stage = Stage.model_validate(
            {"name": "qa", "status": {"freight_history": None, "verification_history": None}}
        )
        assert stage.status.freight_history.empty()
        assert stage.status.verification_history.empty()

    def test_stage_json_round_trip_preserves_order(self):
        stage = Stage(name="qa")
        stage.status.freight_history.push(*_refs("new", "old"))
        restored = Stage.model_validate_json(stage.model_dump_json())
        assert [r.name for r in restored.status.freight_history] == ["new", "old"]
