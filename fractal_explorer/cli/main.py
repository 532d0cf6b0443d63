"""
Command-line interface for fractal rendering.

This module provides a CLI for rendering images, sampling single points and
inspecting views without opening a window.
"""

import sys
import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from .. import __version__
from ..api import FractalRenderer
from ..core.fractal_types import RenderState, FractalFormula, JULIA_PRESETS
from ..core.iteration_budget import adjust_iterations
from ..core.math_functions import sample, Interior
from ..core.navigation import describe
from ..rendering.coloring import color_of, PALETTES, get_palette
from ..io.config import load_config

logger = logging.getLogger(__name__)


def parse_seed(value: str) -> Tuple[float, float]:
    """Julia seed given as "real,imag" or a preset name."""
    if value.lower() in JULIA_PRESETS:
        return JULIA_PRESETS[value.lower()]
    try:
        real, imag = (float(part.strip()) for part in value.split(','))
    except ValueError:
        presets = ', '.join(JULIA_PRESETS)
        raise click.BadParameter(f"expected 'real,imag' or one of: {presets}")
    return real, imag


def state_options(func):
    """Options shared by every command that builds a RenderState."""
    options = [
        click.option('--center', type=(float, float), default=(-0.5, 0.0), show_default=True,
                     help='View center (real imag)'),
        click.option('--view-width', type=float, default=3.0, show_default=True,
                     help='Width of the view on the real axis'),
        click.option('--max-iter', type=int, help='Iteration cap (disables adaptive iterations)'),
        click.option('--julia', 'julia_seed', type=str,
                     help='Render the Julia set for seed "real,imag" or a preset name'),
        click.option('--formula', type=click.Choice([f.value for f in FractalFormula]),
                     default=FractalFormula.STANDARD.value, show_default=True),
        click.option('--palette', type=int, default=0, show_default=True, help='Palette index'),
        click.option('--density', type=float, default=0.2, show_default=True, help='Color density'),
        click.option('--stripes/--no-stripes', default=True, show_default=True,
                     help='Stripe-average coloring'),
        click.option('--stripe-frequency', type=float, default=5.0, show_default=True),
        click.option('--stripe-intensity', type=float, default=10.0, show_default=True),
        click.option('--interior/--no-interior', default=False, show_default=True,
                     help='Interior detection and capped-point shading'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_state(center, view_width, max_iter, julia_seed, formula, palette, density,
                stripes, stripe_frequency, stripe_intensity, interior) -> RenderState:
    """Assemble a RenderState from command-line values."""
    seed = parse_seed(julia_seed) if julia_seed else (-0.8, 0.156)
    state = RenderState(
        center_x=center[0],
        center_y=center[1],
        view_width=view_width,
        max_iterations=max_iter if max_iter is not None else 128,
        color_density=density,
        julia=julia_seed is not None,
        julia_x=seed[0],
        julia_y=seed[1],
        palette_index=palette,
        adaptive_iterations=max_iter is None,
        formula=FractalFormula(formula),
        stripes=stripes,
        stripe_frequency=stripe_frequency,
        stripe_intensity=stripe_intensity,
        interior_detection=interior,
    )
    return adjust_iterations(state)


def _pop_state_kwargs(kwargs):
    names = ('center', 'view_width', 'max_iter', 'julia_seed', 'formula', 'palette', 'density',
             'stripes', 'stripe_frequency', 'stripe_intensity', 'interior')
    return {name: kwargs.pop(name) for name in names}


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True, dir_okay=False), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, config, verbose, quiet):
    """
    Fractal Explorer - escape-time fractal rendering.

    Render Mandelbrot and Julia sets (standard or Burning Ship formula) with
    smooth or stripe-average coloring.
    """
    # Setup logging
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Fractal Explorer v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    ctx.ensure_object(dict)
    try:
        ctx.obj['config'] = load_config(config)
    except (ValueError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('output', type=click.Path(dir_okay=False), required=False)
@state_options
@click.option('--width', '-w', type=int, help='Image width (display width by default)')
@click.option('--height', '-h', type=int, help='Image height (display height by default)')
@click.option('--scale', type=int, default=1, show_default=True,
              help='Render at this multiple of the image size, same view')
@click.option('--preview', is_flag=True, help='Coarse block preview instead of full quality')
@click.option('--workers', type=int, help='Number of render workers')
@click.pass_context
def render(ctx, output, width, height, scale, preview, workers, **kwargs):
    """
    Render an image and save it as PNG.

    OUTPUT: Output image path (a location-based name in the output directory by default)
    """
    config = ctx.obj['config']
    if workers is not None:
        config.num_workers = workers
    if width is not None:
        config.display_width = width
    if height is not None:
        config.display_height = height

    try:
        state = build_state(**_pop_state_kwargs(kwargs))
        with FractalRenderer(config) as renderer:
            if scale > 1:
                if preview:
                    raise ValueError("--preview cannot be combined with --scale")
                path = renderer.save_high_resolution_screenshot(state, scale, output)
            else:
                buffer, elapsed = renderer.render_image(state, use_preview=preview)
                click.echo(f"Render time: {elapsed * 1000:.0f}ms{'' if preview else ' (high quality)'}")
                path = renderer.save_screenshot(state, buffer, output, elapsed)
    except (ValueError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Saved: {path}")


@main.command(name='sample')
@click.argument('real', type=float)
@click.argument('imag', type=float)
@state_options
def sample_command(real, imag, **kwargs):
    """Sample a single point and print its escape data and color."""
    try:
        state = build_state(**_pop_state_kwargs(kwargs))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    result = sample((real, imag), state)
    color = color_of(result, state)

    click.echo(f"Point: ({real}, {imag})")
    click.echo(f"Iterations cap: {state.max_iterations}")
    if isinstance(result, Interior):
        click.echo("Result: interior")
    else:
        click.echo(f"Result: escaped after {result.iterations} iterations")
        click.echo(f"Smooth iteration: {result.smooth_value:.6f}")
        if state.stripes:
            click.echo(f"Stripe average: {result.stripe_average:.6f}")
    click.echo(f"Color: rgb{color.to_tuple()}")


@main.command()
@state_options
def info(**kwargs):
    """Describe a view and list the available palettes, formulas and presets."""
    try:
        state = build_state(**_pop_state_kwargs(kwargs))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(describe(state, len(PALETTES)))
    click.echo("")
    click.echo("Palettes:")
    for index, palette in enumerate(PALETTES):
        marker = '*' if palette is get_palette(state.palette_index) else ' '
        click.echo(f" {marker} {index}: {palette.name} ({len(palette)} colors)")
    click.echo("")
    click.echo("Formulas:")
    for formula in FractalFormula:
        marker = '*' if formula is state.formula else ' '
        click.echo(f" {marker} {formula.value}: {formula.description}")
    click.echo("")
    click.echo("Julia presets:")
    for name, (real, imag) in JULIA_PRESETS.items():
        click.echo(f"   {name}: ({real}, {imag})")


@main.command()
@state_options
@click.option('--size', type=(int, int), default=(400, 400), show_default=True,
              help='Benchmark image size (width height)')
@click.option('--workers', type=int, help='Number of render workers')
@click.pass_context
def benchmark(ctx, size, workers, **kwargs):
    """Time preview and full-quality renders of a view."""
    config = ctx.obj['config']
    if workers is not None:
        config.num_workers = workers

    try:
        state = build_state(**_pop_state_kwargs(kwargs))
        with FractalRenderer(config) as renderer:
            results = renderer.benchmark_performance(state, *size)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Resolution: {results['resolution']}, {results['max_iterations']} iterations, "
               f"{results['num_workers']} workers")
    click.echo(f"Preview (stride {results['preview_stride']}): {results['preview_time'] * 1000:.1f}ms")
    click.echo(f"Full quality: {results['full_time'] * 1000:.1f}ms "
               f"({results['full_pixels_per_second'] / 1e6:.2f} Mpixel/s)")
    click.echo(f"Preview speedup: {results['preview_speedup']:.1f}x")


if __name__ == '__main__':
    main()
