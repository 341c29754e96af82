"""
planscope: runtime SQL capture and execution-plan correlation.

Observes executed SQL statements and their bound parameters, rebuilds the
literal query text, fetches the database's execution plan for it and emits
one diagnostic record per statement.
"""

__version__ = "0.1.0"
