"""
Core runtime.

Components:
- messages.py: commands and I/O completion events
- ports.py: Protocols the runtime depends on (TaskStore, clocks)
- runtime.py: the event loop that owns the registry, plus its background-thread runner
- state.py: AppState handed to the console and command handlers
"""
