"""mcp_hub.config.loader

Chargement de la configuration TOML.

Note d'architecture:
- Le package `config/` ne dépend que de `core/`.
- Aucun cache global: chaque appel relit le fichier (la racine de composition
  garde la configuration chargée).
"""
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.exceptions import ConfigurationError

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(obj: Any) -> Any:
    """
    Récursivement étend les variables d'environnement ${VAR} dans la config.

    Une variable absente de l'environnement est laissée telle quelle.
    """
    if isinstance(obj, str):
        def replace_env_var(match):
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))
        return _ENV_VAR_PATTERN.sub(replace_env_var, obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


def default_config_path() -> Path:
    """`config.toml` à la racine du projet (parent de src/)."""
    # loader.py -> config -> mcp_hub -> src -> project
    return Path(__file__).resolve().parents[3] / "config.toml"


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        import tomllib
    except ImportError:
        try:
            import tomli as tomllib
        except ImportError:
            raise ConfigurationError(
                message="tomllib ou tomli requis pour charger la configuration",
                config_key="dependencies"
            )

    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                message=f"Configuration TOML invalide ({path}): {e}",
                config_key="config_path"
            ) from e


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Charge la configuration depuis config.toml.

    Args:
        config_path: Chemin vers le fichier config (optionnel)

    Returns:
        Dictionnaire de configuration ({} si le fichier n'existe pas)

    Raises:
        ConfigurationError: Si le fichier est invalide
    """
    path = Path(config_path) if config_path else default_config_path()
    if not path.exists():
        return {}

    return _expand_env_vars(_load_toml(path))
