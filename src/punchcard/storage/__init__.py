"""
Storage subsystem.

Components:
- errors.py: LoadError / SaveError hierarchy
- task_store.py: JSON document store with atomic replace-on-write
- persistence.py: PersistenceController (dirty/saving coordination, save cooldown) + autosave ticker
"""
