"""Fixed persona registry lookups. The registry itself lives in settings.yaml."""

from collections.abc import Mapping

from arena.models import Persona


def get_persona(registry: Mapping[str, Persona], persona_id: object) -> Persona | None:
    if not isinstance(persona_id, str):
        return None
    return registry.get(persona_id)


def list_personas(registry: Mapping[str, Persona]) -> list[Persona]:
    """All personas in registry order."""
    return list(registry.values())
