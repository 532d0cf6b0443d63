import pytest
from click.testing import CliRunner
from PIL import Image

from fractal_explorer import __version__
from fractal_explorer.cli.main import main, parse_seed


@pytest.fixture
def runner(monkeypatch):
    for name in ('WORKERS', 'PREVIEW_STRIDE', 'SCREENSHOT_SCALE', 'OUTPUT_DIR'):
        monkeypatch.delenv(f'FRACTAL_EXPLORER_{name}', raising=False)
    return CliRunner()


class TestParseSeed:

    def test_preset(self):
        assert parse_seed("Lightning") == (-0.8, 0.156)

    def test_pair(self):
        assert parse_seed("-0.4, 0.6") == (-0.4, 0.6)

    def test_rejects_garbage(self):
        import click
        with pytest.raises(click.BadParameter):
            parse_seed("somewhere")


def test_version(runner):
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert f"Fractal Explorer v{__version__}" in result.output


class TestRenderCommand:

    def test_render_png(self, runner, tmp_path):
        output = tmp_path / "view.png"
        result = runner.invoke(main, ['render', str(output), '--width', '16', '--height', '12',
                                      '--workers', '2'])
        assert result.exit_code == 0, result.output
        assert "Render time:" in result.output
        assert f"Saved: {output}" in result.output
        with Image.open(output) as img:
            assert img.size == (16, 12)

    def test_render_high_resolution(self, runner, tmp_path):
        output = tmp_path / "hires.png"
        result = runner.invoke(main, ['render', str(output), '-w', '8', '-h', '8', '--scale', '2',
                                      '--workers', '1', '--julia', 'rabbit'])
        assert result.exit_code == 0, result.output
        with Image.open(output) as img:
            assert img.size == (16, 16)

    def test_default_output_name(self, runner, tmp_path):
        result = runner.invoke(main, ['render', '-w', '8', '-h', '8', '--workers', '1', '--preview'],
                               env={'FRACTAL_EXPLORER_OUTPUT_DIR': str(tmp_path)})
        assert result.exit_code == 0, result.output
        saved = list(tmp_path.glob("fractal_mandelbrot_*.png"))
        assert len(saved) == 1

    def test_unsupported_format(self, runner, tmp_path):
        result = runner.invoke(main, ['render', str(tmp_path / "view.jpg"), '-w', '8', '-h', '8'])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_preview_with_scale(self, runner, tmp_path):
        result = runner.invoke(main, ['render', str(tmp_path / "x.png"), '-w', '8', '-h', '8',
                                      '--scale', '2', '--preview'])
        assert result.exit_code == 1

    @pytest.mark.parametrize("option", ['--width', '--height'])
    def test_zero_size_rejected(self, runner, tmp_path, option):
        output = tmp_path / "x.png"
        result = runner.invoke(main, ['render', str(output), option, '0', '--workers', '1'])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not output.exists()

    def test_bad_view_width(self, runner, tmp_path):
        result = runner.invoke(main, ['render', str(tmp_path / "x.png"), '--view-width', '0'])
        assert result.exit_code == 1
        assert "view_width" in result.output


class TestSampleCommand:

    def test_escaping_point(self, runner):
        result = runner.invoke(main, ['sample', '2', '2', '--no-stripes'])
        assert result.exit_code == 0, result.output
        assert "Result: escaped after 3 iterations" in result.output
        assert "Color: rgb(" in result.output

    def test_interior_point(self, runner):
        result = runner.invoke(main, ['sample', '0', '0', '--interior'])
        assert result.exit_code == 0, result.output
        assert "Result: interior" in result.output
        assert "Color: rgb(0, 0, 0)" in result.output

    def test_zero_cap_rejected(self, runner):
        result = runner.invoke(main, ['sample', '0', '0', '--max-iter', '0'])
        assert result.exit_code == 1
        assert "max_iterations" in result.output

    def test_bad_seed(self, runner):
        result = runner.invoke(main, ['sample', '0', '0', '--julia', 'nowhere'])
        assert result.exit_code == 2


class TestInfoCommand:

    def test_lists_palettes_and_presets(self, runner):
        result = runner.invoke(main, ['info'])
        assert result.exit_code == 0, result.output
        assert "Mode: Mandelbrot" in result.output
        assert "Iterations: 100 (auto)" in result.output
        assert " * 0: Classic (15 colors)" in result.output
        assert "lightning: (-0.8, 0.156)" in result.output
        assert " * standard: z_{n+1} = z_n^2 + c" in result.output

    def test_marks_selected_formula(self, runner):
        result = runner.invoke(main, ['info', '--formula', 'burning-ship'])
        assert result.exit_code == 0, result.output
        assert "Formula: burning-ship" in result.output
        assert " * burning-ship: z_{n+1} = (Re(z_n)^2 - Im(z_n)^2) + 2i|Re(z_n) Im(z_n)| + c" in result.output

    def test_julia_view(self, runner):
        result = runner.invoke(main, ['info', '--julia', '0.285,0.01', '--max-iter', '500'])
        assert result.exit_code == 0, result.output
        assert "Mode: Julia" in result.output
        assert "Julia seed: (0.285000, 0.010000)" in result.output
        assert "Iterations: 500\n" in result.output


def test_benchmark(runner):
    result = runner.invoke(main, ['benchmark', '--size', '16', '16', '--workers', '2', '--max-iter', '50'])
    assert result.exit_code == 0, result.output
    assert "Resolution: 16x16, 50 iterations, 2 workers" in result.output
