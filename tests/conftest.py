import asyncio
import io
import os
import struct
import zlib

# Must be set before agroguard.config is first imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = ""
os.environ["AUTO_SYNC_ENABLED"] = "false"

import numpy as np
import pytest
from PIL import Image
from sqlalchemy.orm import sessionmaker

from agroguard.database import build_engine, init_db
from agroguard.schemas.analysis import CropRecord, CropStatus, DetailedMetrics, YieldAnalysis
from agroguard.services.analysis_orchestrator import AnalysisOrchestrator
from agroguard.services.cloud_vision import CloudAnalysisError
from agroguard.services.connectivity import NetworkStatus
from agroguard.services.record_store import RecordStore
from agroguard.services.sync_coordinator import SyncCoordinator


class FakeCloudClient:
    """Stand-in for CloudVisionClient: canned answer, error, or a gated wait."""

    def __init__(self, configured=True, result=None, error=None):
        self.configured = configured
        self.result = result
        self.error = error
        self.calls = []
        self.gate = None
        self.entered = None

    async def analyze(self, image, crop_type, sensitivity):
        self.calls.append({"image": image, "crop_type": crop_type, "sensitivity": sensitivity})
        if self.gate is not None:
            self.entered.set()
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


def make_analysis(**overrides) -> YieldAnalysis:
    values = dict(
        expected_loss=3,
        confidence_score=0.7,
        risk_level="Low",
        recommendations=["Monitor spread"],
        disease_detected="Unknown Pathogen",
        disease_description="Heuristic Analysis",
        similarity_score=0.3,
        symptomless_stress_detected=False,
        stress_probability=10,
        treatment_urgency="Monitoring",
        detailed_metrics=DetailedMetrics(leaf_coverage=5, spread_velocity="Slow", climate_risk_factor=0.5),
    )
    values.update(overrides)
    return YieldAnalysis(**values)


def make_record(record_id: str, timestamp: int = 1_700_000_000_000, **overrides) -> CropRecord:
    values = dict(
        id=record_id,
        timestamp=timestamp,
        crop_type="Tomato",
        image_url=None,
        status=CropStatus.HEALTHY,
        analysis=make_analysis(),
        is_pending_sync=True,
        sync_attempts=0,
    )
    values.update(overrides)
    return CropRecord(**values)


def solid_image(color, size=(64, 64), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def solid_pixels(color, size=128) -> np.ndarray:
    return np.full((size, size, 3), color, dtype=np.uint8)


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


def oversized_png(width=30000, height=30000) -> bytes:
    """Valid PNG header declaring far more pixels than Pillow will decode."""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b""))
        + _png_chunk(b"IEND", b"")
    )


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield RecordStore(sessionmaker(bind=engine, expire_on_commit=False))
    engine.dispose()


@pytest.fixture
def network():
    return NetworkStatus(online=True)


@pytest.fixture
def remote_analysis():
    return make_analysis(
        expected_loss=22,
        confidence_score=0.88,
        risk_level="High",
        recommendations=["Immediate copper-based spray"],
        disease_detected="Late Blight",
        disease_description="Cloud verdict",
        stress_probability=70,
        treatment_urgency="Immediate",
    )


@pytest.fixture
def cloud(remote_analysis):
    return FakeCloudClient(result=remote_analysis)


@pytest.fixture
def failing_cloud():
    return FakeCloudClient(error=CloudAnalysisError("HTTP 503"))


@pytest.fixture
def orchestrator(cloud, network):
    return AnalysisOrchestrator(cloud, network)


@pytest.fixture
def coordinator(store, orchestrator, network):
    return SyncCoordinator(store, orchestrator, network, max_attempts=3, cooldown_seconds=3.0)
