import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel, Field

from a11y_engine.features.audit.schemas.issue import IssueGroup
from a11y_engine.features.audit.schemas.scan import Scan
from a11y_engine.features.audit.services.grouping import GroupingEngine
from a11y_engine.features.audit.services.priority import PriorityScorer
from a11y_engine.features.audit.services.repository import ScanRepository
from a11y_engine.platform.config import settings

logger = logging.getLogger(__name__)

ScanLoader = Callable[[str], Optional[Scan]]


class CampaignAggregate(BaseModel):
    scans: List[Scan] = Field(default_factory=list)
    groups: List[IssueGroup] = Field(default_factory=list)
    current_rate: Optional[float] = None
    excluded_scan_ids: List[str] = Field(default_factory=list)


def average_conformity(scans: Iterable[Scan]) -> Optional[float]:
    rates = [scan.conformity_rate for scan in scans if scan.conformity_rate is not None]
    if not rates:
        return None
    return round(sum(rates) / len(rates), 2)


class CampaignAggregator:
    """
    Loads a campaign's scans concurrently (read-only) and merges their groups.

    Scans that are missing or not completed are excluded and reported. The
    merged groups are rescored on their campaign-wide occurrence counts.
    """

    def __init__(self, loader: ScanLoader, max_workers: Optional[int] = None):
        self.loader = loader
        self.max_workers = max_workers or settings.CAMPAIGN_LOAD_WORKERS

    @classmethod
    def from_session_factory(cls, session_factory, max_workers: Optional[int] = None) -> "CampaignAggregator":
        def load(scan_id: str) -> Optional[Scan]:
            db = session_factory()
            try:
                return ScanRepository.get(db, scan_id)
            finally:
                db.close()

        return cls(load, max_workers=max_workers)

    def load_scans(self, scan_ids: List[str]) -> List[Optional[Scan]]:
        if not scan_ids:
            return []
        workers = max(1, min(self.max_workers, len(scan_ids)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.loader, scan_ids))

    def aggregate(self, scan_ids: List[str], extra_scans: Optional[List[Scan]] = None) -> CampaignAggregate:
        loaded = self.load_scans(scan_ids)
        candidates = [scan for scan in loaded if scan is not None] + list(extra_scans or [])
        excluded = [scan_id for scan_id, scan in zip(scan_ids, loaded) if scan is None]

        scans = []
        for scan in candidates:
            if scan.is_schedulable:
                scans.append(scan)
            else:
                logger.warning(f"[{scan.id}] Scan excluded from the campaign: status is {scan.status.value}")
                excluded.append(scan.id)

        groups = GroupingEngine.merge_campaign_groups(scan.groups for scan in scans)
        groups = PriorityScorer.score_groups(groups)

        logger.info(
            f"Campaign aggregation: {len(scans)} scans, {len(groups)} groups, {len(excluded)} excluded"
        )
        return CampaignAggregate(
            scans=scans,
            groups=groups,
            current_rate=average_conformity(scans),
            excluded_scan_ids=excluded,
        )
