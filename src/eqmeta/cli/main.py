"""Click CLI group: compute and graph commands."""

from __future__ import annotations

import json
from pathlib import Path

import click

from eqmeta import ids
from eqmeta.config import get_settings
from eqmeta.declarations import populate_store, read_document
from eqmeta.errors import EqmetaError
from eqmeta.logging import configure_from_settings
from eqmeta.provider import EqualsMetadataProvider
from eqmeta.registry import DependencyRegistry
from eqmeta.selector import explain_exclusions
from eqmeta.store import InMemoryDeclarationStore
from eqmeta.types import EqualityArtifact


class _Session:
    def __init__(self, path: Path) -> None:
        self.settings = get_settings()
        self.store = InMemoryDeclarationStore()
        self.registry = DependencyRegistry()
        self.provider = EqualsMetadataProvider(self.store, self.registry, self.settings)
        self.provider.open()
        try:
            self.type_ids = populate_store(self.store, read_document(path), self.settings)
        except EqmetaError as exc:
            self.provider.close()
            raise click.ClickException(str(exc)) from exc

    def artifacts(self) -> list[EqualityArtifact]:
        found = []
        for type_identifier in self.type_ids:
            artifact = self.provider.get(ids.artifact_id_for_type(type_identifier))
            if artifact is not None:
                found.append(artifact)
        return found

    def rejected_fields(self, artifact: EqualityArtifact) -> dict[str, str]:
        descriptor = artifact.type
        return explain_exclusions(
            self.store.get_fields(descriptor),
            self.store.get_version_field(descriptor),
            self.store.get_annotation_config(descriptor, self.settings.trigger_annotation),
        )

    def close(self) -> None:
        self.provider.close()


def _as_dict(artifact: EqualityArtifact) -> dict[str, object]:
    identifier = artifact.identifier_field
    return {
        "id": artifact.artifact_id,
        "type": artifact.type.name,
        "path": artifact.type.path,
        "delegated": artifact.delegated,
        "fields": artifact.field_names,
        "identifier_field": identifier.name if identifier is not None else None,
    }


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run.")
def cli(log_level: str | None) -> None:
    """Equality metadata engine CLI."""
    configure_from_settings(get_settings(), log_level)


@cli.command()
@click.argument("declarations", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Emit artifacts as JSON.")
@click.option("--explain", is_flag=True, help="List rejected fields with their rule.")
def compute(declarations: Path, json_output: bool, explain: bool) -> None:
    """Compute the equality field set of every opted-in type."""
    session = _Session(declarations)
    try:
        artifacts = []
        for artifact in session.artifacts():
            item = _as_dict(artifact)
            if explain and not artifact.delegated:
                item["rejected"] = session.rejected_fields(artifact)
            artifacts.append(item)
    finally:
        session.close()

    if json_output:
        click.echo(json.dumps({"artifacts": artifacts}, indent=2, sort_keys=True))
        return
    if not artifacts:
        click.echo("no opted-in types")
        return
    for item in artifacts:
        if item["delegated"]:
            click.echo(f"{item['type']}: delegated")
            continue
        fields = ", ".join(item["fields"]) or "(none)"
        click.echo(f"{item['type']}: {fields}")
        for name, reason in sorted(item.get("rejected", {}).items()):
            click.echo(f"  - {name}: {reason}")


@cli.command()
@click.argument("declarations", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def graph(declarations: Path) -> None:
    """Print field -> artifact dependency edges."""
    session = _Session(declarations)
    try:
        session.artifacts()
        edges = session.registry.edges()
    finally:
        session.close()
    for upstream_id, downstream_id in edges:
        click.echo(f"{upstream_id} -> {downstream_id}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
