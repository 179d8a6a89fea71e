"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskKind, TaskPriority, TaskState) + validation
- task_ids.py: git-style ids, short form, "did you mean" suggestions
- lifecycle.py: state machine (transition table + parent/child DONE rule)
- migrations.py: table schema and the state-constraint migration
- task_store.py: SQLite-backed storage + query/update helpers
- task_api.py: small high-level helpers used by command handlers
"""
