from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from payloadtools.errors import ConfigurationError, DeclarationError, ValidationError
from payloadtools.hydrate.engine import Hydrator
from payloadtools.hydrate.resolver import RequestData
from payloadtools.records.loader import load_declarations
from payloadtools.settings import HydratorSettings

app = typer.Typer(help="payload-tools CLI")

logger = logging.getLogger("payloadtools")


def _setup_logging(verbose: bool) -> None:
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[payloadtools] %(message)s"))
        logger.addHandler(h)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load(decl: Path) -> Dict[str, type]:
    try:
        return load_declarations(decl)
    except DeclarationError as e:
        typer.secho(f"Invalid declaration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _pick(records: Dict[str, type], name: str) -> type:
    if name not in records:
        raise typer.BadParameter(f"Unknown record '{name}'. Choose one of {sorted(records)}")
    return records[name]


def _read_payload(path: Optional[Path]) -> Dict[str, Any]:
    """JSON or YAML mapping from a file; empty when no file is given."""
    if path is None:
        return {}
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def _parse_params(params: Optional[List[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for kv in params or []:
        if "=" not in kv:
            raise typer.BadParameter(f"--param expects key=value, got: {kv}")
        k, v = kv.split("=", 1)
        out[k.strip()] = v.strip()
    return out


def _json_default(o: Any) -> Any:
    if hasattr(o, "isoformat"):
        return o.isoformat()
    return str(o)


# -----------------------------
# check
# -----------------------------
@app.command()
def check(
    decl: Path = typer.Argument(..., help="YAML declaration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Build metadata for every record in DECL and report configuration errors."""
    _setup_logging(verbose)
    records = _load(decl)
    hydrator = Hydrator()
    failed = 0
    for name, record_type in records.items():
        try:
            hydrator.cache.get(record_type)
        except ConfigurationError as e:
            failed += 1
            typer.secho(f"{name}: {e}", fg=typer.colors.RED, err=True)
            continue
        typer.secho(f"{name}: ok", fg=typer.colors.GREEN)
    if failed:
        raise typer.Exit(code=1)


# -----------------------------
# describe
# -----------------------------
@app.command()
def describe(
    decl: Path = typer.Argument(..., help="YAML declaration file"),
    record: str = typer.Argument(..., help="Record name"),
):
    """Print the compiled field descriptors of RECORD as JSON."""
    record_type = _pick(_load(decl), record)
    try:
        meta = Hydrator().cache.get(record_type)
    except ConfigurationError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    out = {"record": meta.name, "fields": [d.describe() for d in meta.fields.values()]}
    typer.echo(json.dumps(out, indent=2, default=_json_default))


# -----------------------------
# hydrate
# -----------------------------
@app.command()
def hydrate(
    decl: Path = typer.Argument(..., help="YAML declaration file"),
    record: str = typer.Argument(..., help="Record name"),
    input_file: Optional[Path] = typer.Option(None, "--input", "-i", help="Body payload (JSON or YAML)"),
    query_file: Optional[Path] = typer.Option(None, "--query", "-q", help="Query parameters (JSON or YAML)"),
    method: str = typer.Option("POST", "--method", "-m", help="HTTP method deciding which sources are read"),
    param: List[str] = typer.Option(None, "--param", "-p", help="Rule placeholder key=value (repeatable)"),
    settings_file: Optional[Path] = typer.Option(None, "--settings", help="Hydrator settings YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Hydrate RECORD from a payload and print its flattened view."""
    _setup_logging(verbose)
    record_type = _pick(_load(decl), record)
    settings = HydratorSettings.from_yaml(settings_file) if settings_file else HydratorSettings()

    raw = RequestData(method=method, query=_read_payload(query_file), body=_read_payload(input_file))
    hydrator = Hydrator(settings=settings)
    try:
        result = hydrator.hydrate(record_type, raw, _parse_params(param))
    except ConfigurationError as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except ValidationError as e:
        typer.echo(json.dumps(e.to_dict(), indent=2))
        raise typer.Exit(code=2)

    typer.echo(json.dumps(result.to_dict(), indent=2, default=_json_default))


if __name__ == "__main__":
    app()
