"""
Extraction orchestration: the sequential setup phase of a multi-table run.
"""

from enum import Enum
from typing import Dict, Iterator, List, Optional

from tablesource.core.config import ExtractionConfig
from tablesource.core.logging import LoggerMixin
from tablesource.database.connection import SourceDatabase
from .exceptions import ExtractionConfigurationError, OrchestrationError
from .models import GenericRecord, PlannedSplit, TableIdentifier, TableSchema
from .prober import SchemaProber
from .publisher import SchemaArgumentStore, SchemaPublisher
from .reader import RowReader
from .resolver import TableResolver
from .splitter import SplitPlanner


class OrchestratorState(Enum):
    """Lifecycle of one extraction run."""
    UNCONFIGURED = "unconfigured"
    TABLES_RESOLVED = "tables_resolved"
    SCHEMAS_PUBLISHED = "schemas_published"
    SPLITS_PLANNED = "splits_planned"
    READY = "ready"
    FAILED = "failed"


class ExtractionOrchestrator(LoggerMixin):
    """
    Drives resolve, probe, publish and plan for one run.

    ``plan()`` runs the whole sequence on a single connection and moves the
    orchestrator through each state once. Any failure leaves it FAILED and
    surfaces as OrchestrationError; no split is exposed until READY.
    ``read_split()`` is the per-split entry point for the parallel phase.
    """

    def __init__(self, database: SourceDatabase, config: ExtractionConfig,
                 store: SchemaArgumentStore,
                 resolver: Optional[TableResolver] = None,
                 prober: Optional[SchemaProber] = None,
                 planner: Optional[SplitPlanner] = None,
                 publisher: Optional[SchemaPublisher] = None):
        self.database = database
        self.config = config
        self.store = store
        self.resolver = resolver or TableResolver(database)
        self.prober = prober or SchemaProber()
        self.planner = planner or SplitPlanner(self.prober)
        self.publisher = publisher or SchemaPublisher(config.argument_prefix)

        self._state = OrchestratorState.UNCONFIGURED
        self._tables: List[TableIdentifier] = []
        self._schemas: Dict[TableIdentifier, TableSchema] = {}
        self._splits: List[PlannedSplit] = []

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def tables(self) -> List[TableIdentifier]:
        return list(self._tables)

    @property
    def schemas(self) -> Dict[TableIdentifier, TableSchema]:
        return dict(self._schemas)

    @property
    def splits(self) -> List[PlannedSplit]:
        """Planned splits, only available once READY."""
        self._require_ready("Splits")
        return list(self._splits)

    def plan(self) -> List[PlannedSplit]:
        """
        Run the sequential phase.

        Returns:
            Ordered splits of every resolved table, each with its schema

        Raises:
            OrchestrationError: If any stage fails or the run was already planned
        """
        if self._state != OrchestratorState.UNCONFIGURED:
            raise OrchestrationError(f"Cannot plan from state {self._state.value}")

        self.logger.info(f"Planning extraction {self.config.reference_name}")
        try:
            with self.database.connect() as conn:
                self._tables = self.resolver.resolve(conn, self.config)
                self._advance(OrchestratorState.TABLES_RESOLVED)

                schemas = self.prober.probe_all(conn, self._tables)
                self._check_split_columns(schemas)
                self.publisher.publish_all(self.store, zip(self._tables, schemas))
                self._schemas = dict(zip(self._tables, schemas))
                self._advance(OrchestratorState.SCHEMAS_PUBLISHED)

                splits: List[PlannedSplit] = []
                for table in self._tables:
                    schema = self._schemas[table]
                    descriptors = self.planner.plan(
                        conn, table,
                        hint=self.config.split_size,
                        schema=schema,
                        split_column=self.config.split_column_for(table.name),
                    )
                    splits.extend(PlannedSplit(split=d, schema=schema) for d in descriptors)
                self._splits = splits
                self._advance(OrchestratorState.SPLITS_PLANNED)
        except Exception as e:
            failed_in = self._state
            self._state = OrchestratorState.FAILED
            self._splits = []
            self.logger.error(f"Extraction planning failed after {failed_in.value}: {e}")
            raise OrchestrationError(
                f"Extraction planning failed: {e}",
                details={"state": failed_in.value, "cause": type(e).__name__}
            ) from e

        self._advance(OrchestratorState.READY)
        self.logger.info(f"Extraction ready: {len(self._tables)} tables, {len(self._splits)} splits")
        return list(self._splits)

    def read_split(self, planned: PlannedSplit) -> Iterator[GenericRecord]:
        """Read one planned split with a dedicated reader and connection."""
        self._require_ready("Reading")
        reader = RowReader(self.database, planned.split, planned.schema, fetch_size=self.config.fetch_size)
        return reader.read()

    def _check_split_columns(self, schemas: List[TableSchema]) -> None:
        """Reject bound column overrides naming a column the table does not have."""
        for table, schema in zip(self._tables, schemas):
            column = self.config.split_column_for(table.name)
            if column and schema.get_field(column) is None:
                raise ExtractionConfigurationError(
                    f"Split column {column} is not a column of {table.qualified_name}",
                    details={"table": table.qualified_name, "columns": schema.field_names}
                )

    def _advance(self, state: OrchestratorState) -> None:
        self.logger.debug(f"Orchestrator state {self._state.value} -> {state.value}")
        self._state = state

    def _require_ready(self, action: str) -> None:
        if self._state != OrchestratorState.READY:
            raise OrchestrationError(f"{action} requires a ready orchestrator, state is {self._state.value}")
