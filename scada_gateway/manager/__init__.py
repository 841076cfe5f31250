from scada_gateway.manager.scan_engine import (
    CycleOutcome,
    CycleReport,
    LinkState,
    ScanEngine,
    TagResult,
)

__all__ = ["CycleOutcome", "CycleReport", "LinkState", "ScanEngine", "TagResult"]
