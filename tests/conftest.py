"""Shared fixtures: fake step executors and session builders."""

import asyncio
import json
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional

import pytest

from models.analysis_models import (
    AnalysisStatus,
    BuildingInfo,
    BuildingType,
    EnergyRating,
    ImagePair,
    RepairPriority,
    Severity,
    ThermalAnomaly,
)
from services.analysis.agent import ThermalAnalysisAgent
from services.analysis.exceptions import ReportGenerationError
from services.analysis.orchestrator import ThermalAnalysisOrchestrator
from services.analysis.session import AnalysisSession
from services.openai.pair_analyzer import PairAnalysisResult
from services.openai.report_generator import EnergyReport
from utils.settings import AnalysisSettings


def make_anomaly(pair: ImagePair, severity: Severity, index: int = 0) -> ThermalAnomaly:
    return ThermalAnomaly(
        id=f"{pair.id}_{severity.value}_{index}",
        location=f"{pair.label} wall",
        severity=severity,
        description="Cold bridge along the lintel",
        temperature_differential="6°C",
        probable_cause="Missing insulation",
        coordinates=[0.1, 0.2, 0.3, 0.4],
        estimated_energy_loss="120 kWh/year",
        repair_cost="EUR 400",
        repair_priority=RepairPriority.HIGH if severity is Severity.SEVERE else RepairPriority.LOW,
        confidence=0.8,
        image_pair_id=pair.id,
    )


class FakePairAnalyzer:
    """Scripted stand-in for ImagePairAnalyzer."""

    def __init__(
        self,
        severities: Optional[Dict[str, List[Severity]]] = None,
        failures: Iterable[str] = (),
        crash_on: Iterable[str] = (),
        delay: float = 0.0,
    ) -> None:
        self.severities = severities or {}
        self.failures = set(failures)
        self.crash_on = set(crash_on)
        self.delay = delay
        self.calls: List[str] = []

    async def analyze(self, pair: ImagePair, building_context: str) -> PairAnalysisResult:
        self.calls.append(pair.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if pair.id in self.crash_on:
            raise RuntimeError("analyzer exploded")
        if pair.id in self.failures:
            return PairAnalysisResult(pair=pair, error=f"Error analyzing {pair.label}: service unavailable")
        anomalies = [make_anomaly(pair, severity, i) for i, severity in enumerate(self.severities.get(pair.id, []))]
        return PairAnalysisResult(pair=pair, anomalies=anomalies, assessment="Envelope inspected.")


class FakeReportGenerator:
    def __init__(self, fail: bool = False, rating: EnergyRating = EnergyRating.C) -> None:
        self.fail = fail
        self.rating = rating
        self.calls = 0

    async def generate(self, building: BuildingInfo, anomalies: List[ThermalAnomaly]) -> EnergyReport:
        self.calls += 1
        if self.fail:
            raise ReportGenerationError("Error generating report: quota exceeded")
        return EnergyReport(
            rating=self.rating,
            justification="Several thermal bridges.",
            improvement_potential="High",
            markdown=f"# Executive Summary\n{building.name} has {len(anomalies)} findings.",
        )


@pytest.fixture
def building_info() -> BuildingInfo:
    return BuildingInfo(
        name="Harbour Office",
        address="1 Quay Street, Rotterdam",
        building_id="B-042",
        construction_year=1978,
        building_type=BuildingType.COMMERCIAL,
        inspector="J. Doe",
        inspection_date="2024-01-15",
        inspection_time="07:30",
        outside_temperature="-2",
    )


def make_pairs(count: int) -> List[ImagePair]:
    return [
        ImagePair(
            id=f"p{i}",
            label=f"Facade {i}",
            rgb_url=f"https://images.example.com/rgb_{i}.jpg",
            thermal_url=f"https://images.example.com/ir_{i}.jpg",
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def fast_settings() -> AnalysisSettings:
    return AnalysisSettings(approval_poll_interval=0.01)


@pytest.fixture
def make_agent(fast_settings):
    def _make(analyzer=None, reporter=None, settings=None, session_id="session-1") -> ThermalAnalysisAgent:
        session = AnalysisSession(session_id)
        orchestrator = ThermalAnalysisOrchestrator(
            session,
            analyzer or FakePairAnalyzer(),
            reporter or FakeReportGenerator(),
            settings or fast_settings,
        )
        return ThermalAnalysisAgent(session, orchestrator)

    return _make


async def wait_for_status(agent: ThermalAnalysisAgent, *statuses: AnalysisStatus, timeout: float = 2.0) -> None:
    """Poll until the session reaches one of ``statuses``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while agent.session.status not in statuses:
        if loop.time() > deadline:
            raise AssertionError(f"status stayed {agent.session.status.value}, expected one of {statuses}")
        await asyncio.sleep(0.005)


class FakeResponses:
    """Records `responses.create` calls and returns queued responses or errors."""

    def __init__(self, outputs: List[object]) -> None:
        self.outputs = list(outputs)
        self.calls: List[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self.outputs.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def function_call_response(name: str, arguments: dict, input_tokens: int = 100, output_tokens: int = 50):
    return SimpleNamespace(
        output=[SimpleNamespace(type="function_call", name=name, arguments=json.dumps(arguments))],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def text_response(text: str):
    return SimpleNamespace(
        output=[SimpleNamespace(type="message", content=[SimpleNamespace(type="output_text", text=text)])],
        usage=SimpleNamespace(input_tokens=200, output_tokens=400),
    )


@pytest.fixture
def fake_client_factory():
    def _make(outputs: List[object]):
        return SimpleNamespace(responses=FakeResponses(outputs))

    return _make
