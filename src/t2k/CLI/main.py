"""
Command Line Interface for T2K.
"""
import logging
import os
import sys

import click

from ..PARSERS.topology_parser import TopologyParser, OverlayParser
from ..MANAGERS.overlay_merger import OverlayMerger
from ..VALIDATORS.topology_validator import Validator
from ..RUNNERS.compiler import TopologyCompiler
from ..CONVERTERS.to_kustomize import KustomizeConverter, to_stream
from ..MODELS.validation import has_errors
from ..exceptions import TopologyError, TopologyValidationError
from ..config import get_settings


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _resolved_spec(ctx):
    """
    Parses the topology and applies the overlays given on the command line.
    """
    path = ctx.obj['file']
    if not os.path.isfile(path):
        _fail(f"{path} not found.")
    for overlay in ctx.obj['overlays']:
        if not os.path.isfile(overlay):
            _fail(f"{overlay} not found.")

    parser = TopologyParser()
    base = parser.parse(path)
    overlay_parser = OverlayParser(context=parser.context, strict=parser.strict)
    overlays = [overlay_parser.parse(o) for o in ctx.obj['overlays']]
    return OverlayMerger().merge_all(base, overlays)


def _compile(ctx):
    spec = _resolved_spec(ctx)
    try:
        return TopologyCompiler().compile(spec)
    except TopologyValidationError as e:
        for issue in e.issues:
            click.echo(str(issue), err=True)
        _fail(str(e))


class TopologyGroup(click.Group):
    """
    Group that reports t2k errors as a one-line message instead of a traceback.
    """
    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except TopologyError as e:
            _fail(str(e))


@click.group(cls=TopologyGroup)
@click.option('--file', '-f', default=None, help='Topology file path')
@click.option('--overlay', '-o', 'overlays', multiple=True, help='Overlay file, may be repeated')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, file, overlays, verbose):
    """
    T2K - Topology to Kubernetes compiler.

    Merges a topology with its overlays, validates it and renders ordered manifests.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj['file'] = file or get_settings().topology_file
    ctx.obj['overlays'] = list(overlays)


@cli.command()
@click.pass_context
def merge(ctx):
    """Print the resolved topology."""
    click.echo(_resolved_spec(ctx).dump(), nl=False)


@cli.command()
@click.pass_context
def validate(ctx):
    """Check the resolved topology for consistency."""
    spec = _resolved_spec(ctx)
    issues = Validator().validate(spec)
    if not issues:
        click.echo(f"Topology {spec.name} is valid.")
        return
    for issue in issues:
        click.echo(str(issue))
    if has_errors(issues):
        sys.exit(1)


@cli.command()
@click.pass_context
def graph(ctx):
    """Print objects in apply order"""
    result = _compile(ctx)
    click.echo(f"{'KIND':24} {'NAME':24} DEPENDS ON")
    click.echo("-" * 70)
    for obj in result.objects:
        click.echo(f"{obj.kind.value:24} {obj.name:24} {', '.join(obj.depends_on)}")


@cli.command()
@click.pass_context
def render(ctx):
    """Print the manifests as one YAML stream"""
    result = _compile(ctx)
    click.echo(to_stream(result.objects), nl=False)


@cli.command()
@click.option('--out', default=None, help='Output directory')
@click.pass_context
def build(ctx, out):
    """Write manifests and kustomization.yaml"""
    result = _compile(ctx)
    out = out or get_settings().output_dir
    converter = KustomizeConverter(result.objects, topology=result.spec.name, namespace=result.spec.namespace)
    files = converter.convert(out)
    click.echo(f"Wrote {len(files)} manifests to {out}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
