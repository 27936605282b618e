"""reqman core - config loading, collection store, header merge, management ops."""

import json
import os
import re
import tempfile
from pathlib import Path

import yaml
from dotenv import dotenv_values

from reqman.errors import (
    CollectionNotFound,
    DuplicateName,
    EndpointNotFound,
    ReqmanError,
    StoreError,
)
from reqman.models import Collection, Endpoint, Method

GLOBAL_DIR = Path.home() / ".reqman"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"
GLOBAL_STORE = GLOBAL_DIR / "collections.json"

STORE_ENV_VAR = "REQMAN_JSON"

CWD_CONFIG_CANDIDATES = [
    ".reqman.yaml",
    ".reqman.yml",
    "reqman.yaml",
    "reqman.yml",
]


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (a missing file means no config)
      2. .reqman.yaml (variants) in CWD
      3. ~/.reqman/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns an empty defaults section if not found.

    Stores '_config_dir' in the returned dict so relative paths in the
    config (data_file, env_file) resolve against the config file.
    """
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ReqmanError(f"Invalid config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ReqmanError(f"Invalid config file {path}: expected a mapping")
    return {
        "defaults": data.get("defaults") or {},
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path | None = ".") -> dict[str, str]:
    """Load .env file and merge with os.environ.

    .env values take precedence over os.environ for the vars they define.
    """
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir or ".") / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value, env: dict[str, str]):
    """Resolve $VAR and ${VAR} references in a config string value.

    Unknown variables are left as written. Non-strings pass through.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, os.environ.get(var_name, m.group(0)))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def resolve_store_path(
    cli_file: str | None,
    config: dict,
    env: dict[str, str],
) -> Path:
    """Find the collections file.

    Resolution order:
      1. -f/--file flag
      2. $REQMAN_JSON
      3. data_file from config defaults (relative to the config file)
      4. ~/.reqman/collections.json
    """
    if cli_file:
        return Path(cli_file)
    if env.get(STORE_ENV_VAR):
        return Path(env[STORE_ENV_VAR])
    data_file = resolve_value(config.get("defaults", {}).get("data_file"), env)
    if data_file:
        p = Path(data_file).expanduser()
        config_dir = config.get("_config_dir")
        if not p.is_absolute() and config_dir:
            p = Path(config_dir) / p
        return p
    return GLOBAL_STORE


def transport_settings(config: dict, env: dict[str, str]) -> dict:
    """Return executor keyword arguments from config defaults."""
    defaults = config.get("defaults", {})
    timeout = resolve_value(defaults.get("timeout"), env)
    follow = resolve_value(defaults.get("follow_redirects", True), env)
    if isinstance(follow, str):
        follow = follow.strip().lower() not in ("0", "false", "no", "off")
    return {
        "timeout": float(timeout) if timeout not in (None, "") else None,
        "follow_redirects": bool(follow),
    }


# ── Store ────────────────────────────────────────────────────────────────


def load_store(path: Path) -> dict[str, Collection]:
    """Read all collections from the JSON store.

    A missing file is an empty store. Anything unreadable or malformed is
    fatal; the file is never repaired.
    """
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise StoreError(f"Malformed collections file {path}: {e}") from e
    except OSError as e:
        raise StoreError(f"Cannot read collections file {path}: {e}") from e

    if not isinstance(data, dict):
        raise StoreError(f"Malformed collections file {path}: expected an object")
    try:
        return {name: Collection.from_dict(name, col) for name, col in data.items()}
    except ValueError as e:
        raise StoreError(f"Malformed collections file {path}: {e}") from e


def save_store(path: Path, collections: dict[str, Collection]) -> None:
    """Write all collections to the JSON store, all or nothing.

    Writes a temp file next to the target and renames it over the target,
    so a failed save leaves the previous file untouched.
    """
    data = {name: col.to_dict() for name, col in collections.items()}
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            json.dump(data, tmp, indent=2)
            tmp.write("\n")
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StoreError(f"Cannot write collections file {path}: {e}") from e


# ── Headers & URLs ───────────────────────────────────────────────────────


def merge_headers(
    collection_headers: dict[str, str],
    endpoint_headers: dict[str, str],
) -> dict[str, str]:
    """Combine collection defaults with endpoint overrides.

    Keys match exactly (no case folding). Overridden keys keep their
    position, endpoint-only keys are appended.
    """
    merged = dict(collection_headers)
    for key, value in endpoint_headers.items():
        merged[key] = value
    return merged


def apply_header_update(
    existing: dict[str, str],
    updates: dict[str, str],
) -> dict[str, str]:
    """Apply a management update: like merge, but an empty value removes the key."""
    result = dict(existing)
    for key, value in updates.items():
        if value == "":
            result.pop(key, None)
        else:
            result[key] = value
    return result


def join_url(base_url: str, path: str) -> str:
    """Join base URL and relative path with exactly one '/' between them."""
    if not path:
        return base_url
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def parse_header(text: str) -> tuple[str, str]:
    """Parse a 'KEY:VALUE' header string. The value may be empty."""
    if ":" not in text:
        raise ValueError(f"Invalid header format: '{text}'. Use KEY:VALUE")
    key, value = text.split(":", 1)
    key = key.strip()
    if not key:
        raise ValueError(f"Invalid header format: '{text}'. Header name is empty")
    return key, value.strip()


def parse_headers(items) -> dict[str, str]:
    """Parse repeated -H values into an ordered dict. Last one wins."""
    headers: dict[str, str] = {}
    for text in items:
        key, value = parse_header(text)
        headers[key] = value
    return headers


# ── Management ───────────────────────────────────────────────────────────


def get_collection(collections: dict[str, Collection], name: str) -> Collection:
    col = collections.get(name)
    if col is None:
        raise CollectionNotFound(name)
    return col


def get_endpoint(
    collections: dict[str, Collection],
    collection_name: str,
    endpoint_name: str,
) -> tuple[Collection, Endpoint]:
    col = get_collection(collections, collection_name)
    ep = col.get_endpoint(endpoint_name)
    if ep is None:
        raise EndpointNotFound(endpoint_name, collection_name)
    return col, ep


def add_collection(
    collections: dict[str, Collection],
    name: str,
    url: str,
    headers: dict[str, str] | None = None,
) -> Collection:
    """Add a collection, or update URL and headers of an existing one."""
    col = collections.get(name)
    if col is None:
        col = Collection(name=name, url=url, headers=dict(headers or {}))
        collections[name] = col
    else:
        col.url = url
        col.headers = apply_header_update(col.headers, headers or {})
    return col


def add_endpoint(
    collections: dict[str, Collection],
    collection_name: str,
    name: str,
    path: str,
    method: Method = Method.GET,
    headers: dict[str, str] | None = None,
    body: str | None = None,
) -> Endpoint:
    """Add an endpoint to a collection, replacing one with the same name."""
    col = get_collection(collections, collection_name)
    ep = Endpoint(
        name=name,
        path=path,
        method=method,
        headers=dict(headers or {}),
        body=body,
    )
    col.endpoints[name] = ep
    return ep


def update_collection(
    collections: dict[str, Collection],
    name: str,
    url: str | None = None,
    headers: dict[str, str] | None = None,
) -> Collection:
    col = get_collection(collections, name)
    if url:
        col.url = url
    if headers:
        col.headers = apply_header_update(col.headers, headers)
    return col


def update_endpoint(
    collections: dict[str, Collection],
    collection_name: str,
    endpoint_name: str,
    path: str | None = None,
    headers: dict[str, str] | None = None,
    body: str | None = None,
    clear_body: bool = False,
) -> Endpoint:
    """Update an endpoint in place.

    body=None leaves the body alone; body="" stores an empty body;
    clear_body=True makes the body absent.
    """
    _, ep = get_endpoint(collections, collection_name, endpoint_name)
    if path:
        ep.path = path
    if headers:
        ep.headers = apply_header_update(ep.headers, headers)
    if clear_body:
        ep.body = None
    elif body is not None:
        ep.body = body
    return ep


def delete_collection(collections: dict[str, Collection], name: str) -> None:
    get_collection(collections, name)
    del collections[name]


def delete_endpoint(
    collections: dict[str, Collection],
    collection_name: str,
    endpoint_name: str,
) -> None:
    col, _ = get_endpoint(collections, collection_name, endpoint_name)
    del col.endpoints[endpoint_name]


def copy_collection(
    collections: dict[str, Collection],
    name: str,
    new_name: str,
) -> Collection:
    src = get_collection(collections, name)
    if new_name in collections:
        raise DuplicateName("Collection", new_name)
    # round-trip through the store encoding for a deep copy
    new_col = Collection.from_dict(new_name, src.to_dict())
    collections[new_name] = new_col
    return new_col


def copy_endpoint(
    collections: dict[str, Collection],
    collection_name: str,
    endpoint_name: str,
    new_name: str,
    to_collection: bool = False,
) -> Endpoint:
    """Copy an endpoint.

    to_collection=False: copy within the collection under new_name.
    to_collection=True: copy into collection new_name, keeping the name.
    """
    _, src = get_endpoint(collections, collection_name, endpoint_name)
    if to_collection:
        target = get_collection(collections, new_name)
        target_name = src.name
    else:
        target = get_collection(collections, collection_name)
        target_name = new_name
    if target_name in target.endpoints:
        raise DuplicateName("Endpoint", f"{target_name} in {target.name}")
    new_ep = Endpoint.from_dict(target_name, src.to_dict())
    target.endpoints[target_name] = new_ep
    return new_ep
