import json
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from hts_platform import concepts
from hts_platform.cli import app
from hts_platform.ml.risk import RiskTier
from hts_platform.ml.scoring import RiskScoringClient, ScoringTransportError

runner = CliRunner()


def test_encode_prints_feature_vector():
    result = runner.invoke(app, [
        "encode",
        "--age", "12",
        "--gender", "M",
        "--entry-point", "159940",
        "--tb-screening", concepts.PRESUMED_TB[0],
    ])
    assert result.exit_code == 0, result.output
    features = json.loads(result.output)
    assert features["GenderMale"] == 1
    assert features["EntryPointVCT"] == 1
    assert features["MaritalStatusMinor"] == 1
    assert features["TBScreeningPresumedTB"] == 1


def test_score_prints_recommendation():
    with patch.object(RiskScoringClient, "recommend", AsyncMock(return_value=RiskTier.MEDIUM.message)) as recommend:
        result = runner.invoke(app, ["score", "--age", "30", "--gender", "F", "--encounter-date", "2023-03-15"])

    assert result.exit_code == 0, result.output
    assert RiskTier.MEDIUM.message in result.output
    raw = recommend.call_args.args[0]
    assert raw.gender == "F"
    assert recommend.call_args.kwargs["encounter_date"].isoformat() == "2023-03-15"


def test_score_failure_exits_nonzero():
    with patch.object(RiskScoringClient, "recommend", AsyncMock(side_effect=ScoringTransportError("timed out"))):
        result = runner.invoke(app, ["score", "--age", "30"])

    assert result.exit_code == 1
