"""
Task subsystem.

Components:
- task_models.py: Interval, Task, EditState, tag:name parsing, HH:MM formatting
- registry.py: TaskRegistry (command surface, single-active/single-editing rules, snapshots)
"""
