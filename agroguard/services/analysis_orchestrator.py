"""Cloud-vs-local analysis decision with silent fallback to the local engine."""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from agroguard.schemas.analysis import YieldAnalysis
from agroguard.services.cloud_vision import CloudVisionClient
from agroguard.services.connectivity import NetworkStatus, get_network_status
from agroguard.services.local_inference import run_local_inference

logger = logging.getLogger(__name__)


class AnalysisSource(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class AnalysisOutcome:
    source: AnalysisSource
    analysis: YieldAnalysis
    error: str | None = None

    @property
    def is_remote(self) -> bool:
        return self.source is AnalysisSource.REMOTE


class AnalysisOrchestrator:
    """Produces exactly one analysis per call; cloud wins whenever it answers."""

    def __init__(self, cloud_client: CloudVisionClient, network: NetworkStatus, local_engine=None):
        self.cloud_client = cloud_client
        self.network = network
        self.local_engine = local_engine or run_local_inference

    @property
    def remote_available(self) -> bool:
        return self.network.is_online() and self.cloud_client.configured

    def _local(self, image, crop_type: str, sensitivity: str, error: str | None = None) -> AnalysisOutcome:
        analysis = self.local_engine(image, crop_type, sensitivity)
        return AnalysisOutcome(source=AnalysisSource.LOCAL, analysis=analysis, error=error)

    async def analyze_with_source(self, image, crop_type: str, sensitivity: str = "Standard") -> AnalysisOutcome:
        if not self.remote_available:
            return self._local(image, crop_type, sensitivity, error="Remote analysis unavailable")

        try:
            analysis = await self.cloud_client.analyze(image, crop_type, sensitivity)
        except Exception as e:
            logger.warning("Cloud analysis failed for %s, falling back to local engine: %s", crop_type, e)
            return self._local(image, crop_type, sensitivity, error=str(e))

        logger.info("Cloud analysis for %s: loss=%d%%", crop_type, analysis.expected_loss)
        return AnalysisOutcome(source=AnalysisSource.REMOTE, analysis=analysis)

    async def analyze(self, image, crop_type: str, sensitivity: str = "Standard") -> YieldAnalysis:
        outcome = await self.analyze_with_source(image, crop_type, sensitivity)
        return outcome.analysis


@lru_cache
def get_orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator(CloudVisionClient(), get_network_status())
