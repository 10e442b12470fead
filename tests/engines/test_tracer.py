"""Tests for the @traced_engine decorator and input fingerprints."""

from decimal import Decimal

from ops_engines.tracer import compute_input_fingerprint, traced_engine


@traced_engine("sample", "1.0", fingerprint_fields=("amount", "lines"))
def _sample_engine(*, amount, lines):
    return amount * len(lines)


class TestTracedEngine:

    def test_result_passes_through(self):
        assert _sample_engine(amount=Decimal("2"), lines=[1, 2, 3]) == Decimal("6")

    def test_trace_record_emitted(self, captured_logs):
        _sample_engine(amount=Decimal("2"), lines=[1])

        traces = [r for r in captured_logs() if r["message"] == "OPS_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "sample"
        assert traces[0]["engine_version"] == "1.0"
        assert len(traces[0]["input_fingerprint"]) == 16
        assert traces[0]["duration_ms"] >= 0


class TestFingerprint:

    def test_deterministic(self):
        kwargs = {"amount": Decimal("10"), "lines": [1, 2]}

        assert compute_input_fingerprint(("amount", "lines"), kwargs) == \
            compute_input_fingerprint(("amount", "lines"), dict(kwargs))

    def test_dict_key_order_ignored(self):
        a = compute_input_fingerprint(("rates",), {"rates": {"np": 30, "carton": 7}})
        b = compute_input_fingerprint(("rates",), {"rates": {"carton": 7, "np": 30}})

        assert a == b

    def test_different_inputs_differ(self):
        a = compute_input_fingerprint(("amount",), {"amount": Decimal("10")})
        b = compute_input_fingerprint(("amount",), {"amount": Decimal("11")})

        assert a != b

    def test_missing_field_counts_as_null(self):
        assert compute_input_fingerprint(("absent",), {}) == \
            compute_input_fingerprint(("absent",), {"absent": None})
