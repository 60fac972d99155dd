"""
Task subsystem.

Components:
- task_models.py: Task entity, Priority, TaskState, urgency
- effects.py: effect variants and their JSON codec
- model.py: in-memory store built by replaying effects
- task_ref.py: parsing of user-typed task references
- flags.py: +tag / -tag / priority:X flags
- task_store.py: SQLite-backed effect log
"""
