"""Application services: the streaming conversation orchestrator and its collaborators.

Import from the submodules directly; ``application.settings`` depends on
``prompts`` and must not pull in the rest of this package.
"""
