"""
Policy Converter - Generate policy files for a corpus subtree.

For each start node and all of its descendants:

1. Skip the node if its access data is not on-site
2. Resolve its type, access mode and access list
3. Expand the policy template
4. Write <policies_dir>/<handle derived name>.xml

Problems with a single node are logged and recorded in the run report;
they never stop the batch.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import logging
import sqlite3
import threading

from ams2xacml.config import ConversionConfig, validate_node_id
from ams2xacml.exceptions import ConfigurationError, OutputDirectoryError
from ams2xacml.policy.acl import AccessListResolver
from ams2xacml.policy.generator import PolicyGenerator
from ams2xacml.policy.serializer import policy_path, write_policy
from ams2xacml.policy.template import PolicyTemplate
from ams2xacml.storage.corpus_store import MetadataStore

logger = logging.getLogger(__name__)


class ConversionStatus(Enum):
    """Outcome for one node."""
    GENERATED = "generated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ConversionResult:
    """Outcome of converting one node."""
    node_id: str
    status: ConversionStatus
    path: Optional[Path] = None
    reason: str = ""
    subject_count: int = 0

    def to_dict(self) -> Dict:
        return {
            "node_id": self.node_id,
            "status": self.status.value,
            "path": str(self.path) if self.path else None,
            "reason": self.reason,
            "subject_count": self.subject_count,
        }


@dataclass
class ConversionReport:
    """Results of a conversion run."""
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    results: List[ConversionResult] = field(default_factory=list)

    def _count(self, status: ConversionStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def generated(self) -> int:
        return self._count(ConversionStatus.GENERATED)

    @property
    def skipped(self) -> int:
        return self._count(ConversionStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(ConversionStatus.FAILED)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> Dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "generated": self.generated,
            "skipped": self.skipped,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


class PolicyConverter:
    """
    Convert corpus structure access rights to XACML policy files.

    Example:
        >>> with SQLiteCorpusStore("corpusstructure.db") as store:
        ...     converter = PolicyConverter(store, load_template(), config)
        ...     report = converter.run(["MPI12345#"])
    """

    def __init__(
        self,
        store: MetadataStore,
        template: PolicyTemplate,
        config: Optional[ConversionConfig] = None,
    ):
        self.store = store
        self.config = config or ConversionConfig()
        self.generator = PolicyGenerator(
            template,
            AccessListResolver(store),
            username_format=self.config.username_format,
            max_users_per_group=self.config.max_users_per_group,
        )

    def collect_node_ids(self, start_node_ids: Iterable[str]) -> List[str]:
        """All descendants of the start nodes followed by the start nodes themselves."""
        start = [validate_node_id(node_id) for node_id in start_node_ids]
        node_ids = self.store.list_descendants(start)
        for node_id in start:
            if node_id not in node_ids:
                node_ids.append(node_id)
        return node_ids

    def convert_node(self, node_id: str) -> ConversionResult:
        """Generate and write the policy for one node."""
        if not self.store.is_on_site(node_id):
            logger.info(f"Skipping {node_id}: not on-site")
            return ConversionResult(node_id, ConversionStatus.SKIPPED, reason="not on-site")

        handle = self.store.resolve_handle(node_id)
        if not handle:
            logger.warning(f"Skipping {node_id}: no handle")
            return ConversionResult(node_id, ConversionStatus.SKIPPED, reason="no handle")

        node_type = self.store.resolve_node_type(node_id)
        policy = self.generator.generate(node_id, node_type)

        if self.config.dry_run:
            path = policy_path(handle, self.config.policies_dir)
            logger.info(f"[dry run] {node_id} -> {path}")
        else:
            try:
                path = write_policy(policy.document, handle, self.config.policies_dir)
            except (OutputDirectoryError, OSError) as e:
                logger.error(f"Skipping {node_id}: {e}")
                return ConversionResult(node_id, ConversionStatus.FAILED, reason=str(e))
            logger.info(f"Generated {policy.mode.value} policy for {node_id}: {path}")

        return ConversionResult(
            node_id,
            ConversionStatus.GENERATED,
            path=path,
            subject_count=policy.subject_count,
        )

    def _convert_guarded(
        self,
        node_id: str,
        stop_event: Optional[threading.Event],
    ) -> ConversionResult:
        if stop_event is not None and stop_event.is_set():
            return ConversionResult(node_id, ConversionStatus.SKIPPED, reason="cancelled")
        try:
            return self.convert_node(node_id)
        except sqlite3.Error as e:
            logger.error(f"Store error for {node_id}: {e}")
            return ConversionResult(node_id, ConversionStatus.FAILED, reason=f"store error: {e}")

    def run(
        self,
        start_node_ids: Optional[Iterable[str]] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> ConversionReport:
        """
        Convert all nodes below (and including) the start nodes.

        Args:
            start_node_ids: Start nodes, defaults to the configured ones
            stop_event: Set to stop before the next node is started

        Returns:
            ConversionReport with one result per node

        Raises:
            ConfigurationError: If neither argument nor config names a start node
        """
        start = list(start_node_ids or self.config.start_node_ids)
        if not start:
            raise ConfigurationError("At least one start node ID is required")

        report = ConversionReport()
        node_ids = self.collect_node_ids(start)
        logger.info(f"Converting {len(node_ids)} node(s) below {', '.join(start)}")

        if self.config.workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                report.results = list(executor.map(
                    lambda node_id: self._convert_guarded(node_id, stop_event),
                    node_ids,
                ))
        else:
            for node_id in node_ids:
                report.results.append(self._convert_guarded(node_id, stop_event))

        report.finished_at = datetime.now()
        logger.info(
            f"Conversion complete: {report.generated} generated, "
            f"{report.skipped} skipped, {report.failed} failed"
        )
        return report
