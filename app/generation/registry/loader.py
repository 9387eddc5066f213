"""Movement registry loader.

The catalog is a YAML file shipped with the package. It is parsed once per
path and cached; the cached registry is read-only and shared by all requests.
"""

from pathlib import Path

import yaml
from loguru import logger

from app.config.settings import settings
from app.generation.errors import ConfigurationError
from app.generation.registry.movement import Modality, Movement, MovementCategory, MovementRegistry

BUNDLED_REGISTRY_PATH = Path(__file__).parent / "movements.yaml"

_REQUIRED_FIELDS = ("id", "name", "category", "patterns", "equipment", "modality")

_registry_cache: dict[str, MovementRegistry] = {}


def _parse_movement(raw: object, source: Path) -> Movement:
    if not isinstance(raw, dict):
        raise ConfigurationError("REGISTRY_INVALID", [f"Movement entry must be a mapping in {source}"])
    for field in _REQUIRED_FIELDS:
        if field not in raw:
            raise ConfigurationError(
                "REGISTRY_INVALID",
                [f"Missing required field '{field}' in {source}"],
                {"movement": raw.get("id")},
            )
    try:
        category = MovementCategory(raw["category"])
        modality = Modality(raw["modality"])
    except ValueError as e:
        raise ConfigurationError("REGISTRY_INVALID", [str(e)], {"movement": raw["id"]}) from e

    return Movement(
        id=str(raw["id"]),
        name=str(raw["name"]),
        category=category,
        patterns=tuple(str(p) for p in raw["patterns"]),
        equipment=tuple(str(e).lower() for e in raw["equipment"]),
        modality=modality,
        level=str(raw.get("level", "beginner")),
        banned_in_main_when_equipment=bool(raw.get("banned_in_main_when_equipment", False)),
        aliases=tuple(str(a) for a in raw.get("aliases", [])),
    )


def load_registry(path: Path | None = None) -> MovementRegistry:
    """Parse a movement registry file.

    Args:
        path: YAML file to read. Defaults to the bundled catalog.

    Returns:
        MovementRegistry instance

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    source = path or BUNDLED_REGISTRY_PATH
    if not source.exists():
        raise ConfigurationError("REGISTRY_MISSING", [f"Movement registry not found: {source}"])

    with source.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or not isinstance(data.get("movements"), list):
        raise ConfigurationError("REGISTRY_INVALID", [f"Expected a 'movements' list in {source}"])

    movements = [_parse_movement(raw, source) for raw in data["movements"]]
    try:
        registry = MovementRegistry(movements, version=data.get("version"))
    except ValueError as e:
        raise ConfigurationError("REGISTRY_INVALID", [str(e)]) from e

    logger.info(
        "Movement registry loaded",
        path=str(source),
        movement_count=len(registry),
        version=registry.version,
    )
    return registry


def get_registry() -> MovementRegistry:
    """Return the process-wide registry, loading it on first use."""
    override = settings.movement_registry_path
    path = Path(override) if override else BUNDLED_REGISTRY_PATH
    key = str(path.resolve())
    registry = _registry_cache.get(key)
    if registry is None:
        registry = load_registry(path)
        _registry_cache[key] = registry
    return registry


def clear_registry_cache() -> None:
    _registry_cache.clear()
    logger.debug("Movement registry cache cleared")
