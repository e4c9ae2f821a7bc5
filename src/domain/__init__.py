"""Domain layer for Conversation Host.

Contains:
- entities/: Aggregate roots using AggregateRoot[TState, TKey] pattern
- events/: Domain events with @cloudevent decorators
- exceptions: Domain-specific exceptions
- models/: Value objects (turns, attachments, tools, request logs)
- repositories/: Abstract repository interfaces
"""
