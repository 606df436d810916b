from typing import Optional

from shared.kv_store import KeyValueStore, get_json, put_json

from .log import log
from .models import PropertyConfig

WORKSPACE_REGISTRY_KEY = "booking:workspaces"


def config_key(slug: str) -> str:
    return f"config:{slug}"


class PropertyDirectory:
    """Tenant configs live in the shared store under `config:<slug>`."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self, slug: str) -> Optional[PropertyConfig]:
        data = await get_json(self.store, config_key(slug))
        if not isinstance(data, dict):
            return None
        return PropertyConfig.from_dict(slug, data)

    async def save(self, config: PropertyConfig) -> None:
        # last writer wins; there is no version check on the stored document
        await put_json(self.store, config_key(config.slug), config.to_dict())

    async def resolve_sink_url(self, config: PropertyConfig, default_url: str) -> str:
        workspace_id = config.workspace_id
        if not workspace_id:
            return default_url

        try:
            registry = await get_json(self.store, WORKSPACE_REGISTRY_KEY)
        except Exception as e:
            log(f"workspace registry read failed; using default: {e}")
            registry = None

        workspaces = registry.get("workspaces") if isinstance(registry, dict) else None
        if not isinstance(workspaces, list):
            workspaces = []

        workspace = next(
            (w for w in workspaces if isinstance(w, dict) and (w.get("id") or "") == workspace_id),
            None,
        )
        url = str((workspace or {}).get("bookingWebhookUrl") or "").strip()
        if not url:
            log(f"workspaceId={workspace_id} has no webhook url; using default")
            return default_url
        if workspace.get("enabled") is False:
            log(f"workspaceId={workspace_id} disabled; using default")
            return default_url
        return url
