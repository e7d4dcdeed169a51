"""
AuraLock Core

Behavioral trust pipeline: collectors, ZKScore engine and per-user
orchestration. Import from the submodules directly:

    from core.orchestrator import TrustOrchestrator, SessionRegistry
    from core.context import build_app_context
"""
