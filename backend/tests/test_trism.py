"""
TRiSM Tests
===========

Key invariants tested:
1. First observation of a source has drift score exactly 1.0
2. Drift policy: erratic (<0.1) → 0.3, parroting (>0.9) → 0.4, else 0.5 + 0.5·sim
3. Hallucination score is the verified share, 0.8 with nothing to check
4. Breaker escalation: 3 failures → throttle, 5 → quarantine, 8 → kill
5. Successes decay failures by 0.5; kill holds until reset
"""

import pytest

from models.domain.paper import Paper
from services.trism import (
    TrustLayer, CircuitBreaker, BreakerLevel, DriftDetector, HallucinationChecker,
    tokenise, jaccard,
)


FABRICATED = "ZorbNet and FluxFormer outperform every baseline."


class TestDriftDetector:

    def test_first_observation_is_one(self):
        detector = DriftDetector()
        assert detector.check("iris", "anything at all").score == 1.0
        assert detector.check("sage", "").score == 1.0

    def test_identical_output_is_repetitive(self):
        detector = DriftDetector()
        detector.check("iris", "transformers scale with data")
        result = detector.check("iris", "transformers scale with data")
        assert result.similarity == 1.0
        assert result.score == 0.4

    def test_unrelated_output_is_erratic(self):
        detector = DriftDetector()
        detector.check("iris", "transformers scale with data")
        result = detector.check("iris", "bananas ripen quickly indoors")
        assert result.similarity == 0.0
        assert result.score == 0.3

    def test_moderate_similarity_interpolates(self):
        detector = DriftDetector()
        detector.check("iris", "alpha beta gamma delta")
        result = detector.check("iris", "alpha beta gamma epsilon")
        # 3 shared of 5 distinct tokens
        assert result.similarity == pytest.approx(0.6)
        assert result.score == pytest.approx(0.8)

    def test_compares_against_last_three(self):
        detector = DriftDetector(compare_window=3)
        detector.check("iris", "one two three")
        detector.check("iris", "four five six")
        detector.check("iris", "four five six")
        detector.check("iris", "four five six")
        # "one two three" has left the comparison window
        assert detector.check("iris", "four five six").similarity == 1.0

    def test_history_is_bounded(self):
        detector = DriftDetector(history_size=10)
        for i in range(15):
            detector.check("iris", f"output number {i}")
        assert detector.get_history() == {"iris": 10}

    def test_sources_are_independent(self):
        detector = DriftDetector()
        detector.check("iris", "same words here")
        assert detector.check("sage", "same words here").score == 1.0

    def test_tokenise_drops_short_tokens(self):
        assert tokenise("An AI is OK, but GPUs win") == ["but", "gpus", "win"]

    def test_jaccard_of_empty_sets(self):
        assert jaccard(frozenset(), frozenset()) == 0.0


class TestHallucinationChecker:

    def test_no_entities_defaults(self, kg):
        result = HallucinationChecker(kg).check("nothing capitalised here at all")
        assert result.score == 0.8
        assert result.entities == []

    def test_empty_content_gets_no_entity_default(self, kg):
        result = HallucinationChecker(kg).check("")
        assert result.score == 0.8
        assert result.flags == []

    def test_unverified_entities_score_zero(self, kg):
        result = HallucinationChecker(kg).check(FABRICATED)
        assert set(result.entities) == {"ZorbNet", "FluxFormer"}
        assert result.unverified == 2
        assert result.score == 0.0
        assert all(f["type"] == "unverified" for f in result.flags)

    def test_verified_share(self, kg):
        kg.add_node(Paper(id="p1", title="ZorbNet: a network"))
        result = HallucinationChecker(kg).check(FABRICATED)
        assert result.verified == 1
        assert result.score == 0.5

    def test_citation_mentions_are_extracted(self, kg):
        entities = HallucinationChecker(kg).extract_entities("As shown by Vaswani (2017) and Devlin et al. 2019")
        assert "Vaswani" in entities
        assert "Devlin et al." in entities

    def test_entities_are_capped(self, kg):
        text = " and ".join(f"Model{chr(65 + i)}Net" for i in range(26))
        assert len(HallucinationChecker(kg, max_entities=20).extract_entities(text)) == 20

    def test_flags_precision_and_self_reference(self, kg):
        text = "As I mentioned, 1.2345 2.3456 3.4567 4.5678 5.6789 6.7891 are the results."
        flag_types = {f["type"] for f in HallucinationChecker(kg).check(text).flags}
        assert flag_types == {"suspicious_precision", "self_reference"}


class TestCircuitBreaker:

    def test_three_failures_throttle(self):
        breaker = CircuitBreaker()
        levels = [breaker.record_failure("iris") for _ in range(3)]
        assert levels == [BreakerLevel.NORMAL, BreakerLevel.NORMAL, BreakerLevel.THROTTLE]

    def test_five_failures_quarantine_eight_kill(self):
        breaker = CircuitBreaker()
        for _ in range(5):
            breaker.record_failure("iris")
        assert breaker.get_action("iris") is BreakerLevel.QUARANTINE
        for _ in range(3):
            breaker.record_failure("iris")
        assert breaker.get_action("iris") is BreakerLevel.KILL

    def test_interleaved_successes_slow_escalation(self):
        breaker = CircuitBreaker()
        # F S F S F: net 3 - 1 = 2 failures
        for outcome in ["f", "s", "f", "s", "f"]:
            if outcome == "f":
                breaker.record_failure("iris")
            else:
                breaker.record_success("iris")
        assert breaker.get_status("iris").failures == 2.0
        assert breaker.get_action("iris") is BreakerLevel.NORMAL

        breaker.record_failure("iris")
        assert breaker.get_action("iris") is BreakerLevel.THROTTLE

    def test_success_floors_at_zero(self):
        breaker = CircuitBreaker()
        breaker.record_success("iris")
        assert breaker.get_status("iris").failures == 0.0

    def test_throttle_recovers(self):
        breaker = CircuitBreaker()
        for _ in range(3):
            breaker.record_failure("iris")
        breaker.record_success("iris")
        assert breaker.get_action("iris") is BreakerLevel.NORMAL

    def test_kill_is_sticky_until_reset(self):
        breaker = CircuitBreaker()
        for _ in range(8):
            breaker.record_failure("iris")
        for _ in range(20):
            breaker.record_success("iris")
        assert breaker.get_action("iris") is BreakerLevel.KILL

        breaker.reset("iris")
        assert breaker.get_action("iris") is BreakerLevel.NORMAL

    def test_reset_all(self):
        breaker = CircuitBreaker()
        breaker.record_failure("iris")
        breaker.record_failure("sage")
        breaker.reset()
        assert breaker.get_all_statuses() == {}

    def test_thresholds_are_configurable(self):
        breaker = CircuitBreaker(throttle_after=1, quarantine_after=2, kill_after=3)
        assert breaker.record_failure("iris") is BreakerLevel.THROTTLE

    def test_unknown_source_is_normal_and_unregistered(self):
        breaker = CircuitBreaker()
        assert breaker.get_action("ghost") is BreakerLevel.NORMAL
        assert "ghost" not in breaker.get_all_statuses()


class TestTrustLayer:

    def test_combined_score_is_mean(self, kg):
        trism = TrustLayer(kg)
        evaluation = trism.evaluate("iris", FABRICATED)
        # hallucination 0.0, first-observation drift 1.0
        assert evaluation.hallucination_score == 0.0
        assert evaluation.drift_score == 1.0
        assert evaluation.combined_score == 0.5
        assert evaluation.action is BreakerLevel.NORMAL

    def test_repeated_fabrication_escalates_to_throttle(self, kg):
        trism = TrustLayer(kg)
        trism.evaluate("iris", FABRICATED)
        actions = [trism.evaluate("iris", FABRICATED).action for _ in range(3)]
        # hallucination 0.0 + parroting drift 0.4 → combined 0.2 < 0.3
        assert actions[-1] is BreakerLevel.THROTTLE
        assert trism.get_action("iris") is BreakerLevel.THROTTLE

    def test_evaluation_details(self, kg):
        evaluation = TrustLayer(kg).evaluate("iris", FABRICATED).to_dict()
        assert evaluation["action"] == "normal"
        assert set(evaluation["details"]) == {"hallucination", "drift", "circuit_breaker"}

    def test_status_and_reset(self, kg):
        trism = TrustLayer(kg)
        trism.evaluate("iris", "plain text")
        status = trism.get_status()
        assert "iris" in status["agents"]
        assert status["drift_history"] == {"iris": 1}

        trism.reset()
        assert trism.get_status()["agents"] == {}
