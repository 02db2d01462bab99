"""
Anonymized PostgreSQL exports

Extracts a database's tables into a replayable dump with per-column
anonymization applied server side, ordered so that foreign keys are
satisfied on reload.

Components:
- rules: Strategy enum, rules and the read-only rule index
- compiler: Column expressions and anonymizing projections
- tables: Table set resolution
- dependency: FK graph and topological ordering
- executor: Streaming export of an ordered plan

Usage:
    from anonymize.config import load_config
    from anonymize.dependency import order_tables
    from anonymize.executor import ExportExecutor
"""

__version__ = "1.0.0"
__all__ = ["rules", "compiler", "tables", "dependency", "executor"]
