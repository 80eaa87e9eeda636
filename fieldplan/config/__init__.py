from fieldplan.config.settings import (
    ProviderSnapshot,
    WorkflowSettings,
    load_settings,
    resolve_provider_snapshot,
)

__all__ = [
    "ProviderSnapshot",
    "WorkflowSettings",
    "load_settings",
    "resolve_provider_snapshot",
]
