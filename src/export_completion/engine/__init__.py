"""Completion decision engine: retry, evaluators, and the job-completion orchestrator.

Import from the submodules directly; this package stays import-free so the
store can depend on engine.retry without cycles.
"""
