"""Tests for structured ledger errors."""

from ledger.errors import ErrorKind, LedgerError, dominant_kind, errors_from_messages


class TestLedgerError:
    def test_factories_set_kind(self):
        assert LedgerError.validation("quantity", "bad").kind == ErrorKind.VALIDATION
        assert LedgerError.conflict("gone").kind == ErrorKind.CONFLICT
        assert LedgerError.not_found("product_id", "missing").kind == ErrorKind.NOT_FOUND

    def test_conflict_defaults_to_quantity_field(self):
        assert LedgerError.conflict("gone").field == "quantity"

    def test_to_dict(self):
        error = LedgerError.validation("quantity", "bad", product_id="prod-001")
        assert error.to_dict() == {
            "kind": "validation",
            "field": "quantity",
            "message": "bad",
            "product_id": "prod-001",
        }


class TestErrorsFromMessages:
    def test_flattens_every_message(self):
        errors = errors_from_messages({"quantity": ["a", "b"], "to_warehouse_id": ["c"]})
        assert [(e.field, e.message) for e in errors] == [
            ("quantity", "a"),
            ("quantity", "b"),
            ("to_warehouse_id", "c"),
        ]

    def test_accepts_plain_string_messages(self):
        errors = errors_from_messages({"status": "Already done"}, kind=ErrorKind.CONFLICT)
        assert errors[0].message == "Already done"
        assert errors[0].kind == ErrorKind.CONFLICT

    def test_empty(self):
        assert errors_from_messages(None) == []


class TestDominantKind:
    def test_not_found_wins(self):
        errors = [
            LedgerError.validation("quantity", "bad"),
            LedgerError.not_found("product_id", "missing"),
            LedgerError.conflict("gone"),
        ]
        assert dominant_kind(errors) == ErrorKind.NOT_FOUND

    def test_conflict_over_validation(self):
        errors = [LedgerError.validation("quantity", "bad"), LedgerError.conflict("gone")]
        assert dominant_kind(errors) == ErrorKind.CONFLICT

    def test_none_for_no_errors(self):
        assert dominant_kind([]) is None
