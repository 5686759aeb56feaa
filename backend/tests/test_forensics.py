"""
Forensics scorer tests.
"""

import pytest

from models.domain.paper import Paper
from services.forensics import Forensics, score_deontic, verdict_for


class TestDeontic:

    def test_no_markers_is_neutral(self):
        assert score_deontic("").ratio == 0.5
        assert score_deontic("The cat sat on the mat.").ratio == 0.5

    def test_prescriptive_text(self):
        result = score_deontic("Researchers must adopt this and should stop using RNNs.")
        assert result.deontic_count == 2
        assert result.hedge_count == 0
        assert result.ratio == 0.0

    def test_hedged_text(self):
        result = score_deontic("This may possibly work, and it might generalise.")
        assert result.hedge_count == 3
        assert result.ratio == 1.0


@pytest.mark.parametrize("score,verdict", [
    (100, "credible"), (70, "credible"), (69, "uncertain"), (40, "uncertain"), (39, "suspicious"), (0, "suspicious"),
])
def test_verdict_thresholds(score, verdict):
    assert verdict_for(score) == verdict


class TestScorePaper:

    def test_isolated_paper_without_text_is_suspicious(self, kg):
        kg.add_node(Paper(id="p1", title="Lonely"))
        result = Forensics(kg).score_paper("p1", "")
        assert result.synthetic_ethos_score == 27
        assert result.verdict == "suspicious"

    def test_connected_documented_paper_is_credible(self, kg):
        kg.add_node(Paper(id="hub", title="Hub"))
        for i in range(10):
            kg.add_node(Paper(id=f"ref{i}", title=f"Reference {i}"))
            kg.add_edge("hub", f"ref{i}")

        text = "Our method is evaluated on a benchmark dataset; code available on GitHub. Gains may vary."
        result = Forensics(kg).score_paper("hub", text)

        assert result.traceability.has_method_section
        assert result.traceability.has_data_section
        assert result.traceability.has_code_link
        assert result.synthetic_ethos_score == 100
        assert result.verdict == "credible"

    def test_to_dict(self, kg):
        data = Forensics(kg).score_paper("missing", "").to_dict()
        assert data["paper_id"] == "missing"
        assert set(data) == {"paper_id", "synthetic_ethos_score", "verdict", "deontic", "traceability"}
