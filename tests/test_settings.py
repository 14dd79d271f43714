from pathlib import Path

import pytest

from services.openai.cost_generator import CostGenerator
from utils.media_validation import validate_image_url
from utils.settings import AnalysisSettings


def test_defaults_from_empty_environment():
    settings = AnalysisSettings.from_env({})

    assert settings == AnalysisSettings()
    assert settings.approval_timeout is None
    assert settings.database_dir is None


def test_values_from_environment():
    settings = AnalysisSettings.from_env(
        {
            "THERMAL_ANALYSIS_MODEL": "gpt-5-mini",
            "THERMAL_REPORT_MODEL": " gpt-4.1 ",
            "APPROVAL_POLL_INTERVAL": "0.5",
            "APPROVAL_TIMEOUT_SECONDS": "600",
            "REQUIRE_START_APPROVAL": "yes",
            "EXPENSIVE_PAIR_THRESHOLD": "20",
            "DATABASE_DIR": "/tmp/thermal",
        }
    )

    assert settings.analysis_model == "gpt-5-mini"
    assert settings.report_model == "gpt-4.1"
    assert settings.approval_poll_interval == 0.5
    assert settings.approval_timeout == 600
    assert settings.require_start_approval is True
    assert settings.expensive_pair_threshold == 20
    assert settings.database_dir == Path("/tmp/thermal")


@pytest.mark.parametrize(
    "name, value",
    [
        ("APPROVAL_POLL_INTERVAL", "soon"),
        ("APPROVAL_POLL_INTERVAL", "0"),
        ("APPROVAL_TIMEOUT_SECONDS", "-5"),
        ("EXPENSIVE_PAIR_THRESHOLD", "many"),
        ("EXPENSIVE_PAIR_THRESHOLD", "-1"),
        ("REQUIRE_START_APPROVAL", "maybe"),
    ],
)
def test_invalid_values_raise(name, value):
    with pytest.raises(RuntimeError, match=name):
        AnalysisSettings.from_env({name: value})


def test_cost_estimates():
    costs = CostGenerator()

    assert costs.pair_analysis_estimate(10, "gpt-5") == "~$0.16"
    assert costs.report_estimate(4, "GPT-5").startswith("~$")
    assert costs.pair_analysis_estimate(10, "unknown-model") is None
    with pytest.raises(ValueError):
        costs.estimate(-1, 10, "gpt-5")


@pytest.mark.parametrize(
    "url",
    [
        "https://images.example.com/rgb_1.jpg",
        " http://10.0.0.5/ir.png ",
        "data:image/png;base64,iVBORw0KGgo=",
    ],
)
def test_valid_image_urls(url):
    assert validate_image_url(url) == url.strip()


@pytest.mark.parametrize(
    "url",
    [
        "",
        "ftp://images.example.com/a.jpg",
        "/relative/path.jpg",
        "data:application/pdf;base64,AAAA",
        "data:image/png,rawbytes",
    ],
)
def test_invalid_image_urls(url):
    with pytest.raises(ValueError):
        validate_image_url(url)
