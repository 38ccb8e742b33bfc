"""Tests for the CLI."""

import json

import pytest
from click.testing import CliRunner

from webp_derivatives.cli import cli


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setenv('WEBP_FACE_DETECTION', '0')
    monkeypatch.setenv('WEBP_MEMORY_LIMIT_MB', '0')
    monkeypatch.delenv('WEBP_SIZES', raising=False)
    return CliRunner()


class TestConvert:
    """Tests for the convert command."""

    def test_writes_metadata_then_retires(self, runner, make_image, tmp_path):
        source = make_image('photo.jpg', (800, 600), fmt='JPEG')
        make_image('photo-150x150.jpg', (150, 150), fmt='JPEG')
        meta = tmp_path / 'photo.json'
        meta.write_text(json.dumps({
            'file': 'photo.jpg',
            'sizes': {'thumbnail': {'file': 'photo-150x150.jpg'}},
        }))

        result = runner.invoke(cli, [
            'convert', str(source), '--metadata', str(meta),
            '--size', 'thumbnail:150x150:crop', '--retire',
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(meta.read_text())
        assert data['file'] == 'photo.webp'
        assert data['sizes']['thumbnail']['file'] == 'photo-thumbnail.webp'
        assert not source.exists()
        assert not (tmp_path / 'photo-150x150.jpg').exists()
        assert (tmp_path / 'photo.webp').exists()

    def test_output_file(self, runner, make_image, tmp_path):
        source = make_image('icon.png', (100, 100), fmt='PNG')
        out = tmp_path / 'out.json'

        result = runner.invoke(cli, ['convert', str(source), '-o', str(out), '-s', 'medium:300x0'])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data['sizes']['medium']['width'] == 300
        assert source.exists()

    def test_retire_requires_stored_metadata(self, runner, make_image):
        source = make_image('photo.jpg', (10, 10), fmt='JPEG')

        result = runner.invoke(cli, ['convert', str(source), '--retire'])

        assert result.exit_code == 2
        assert source.exists()

    def test_unsupported_passes_through(self, runner, make_image, tmp_path):
        source = make_image('anim.gif', (10, 10), fmt='GIF')
        out = tmp_path / 'out.json'

        result = runner.invoke(cli, ['convert', str(source), '-o', str(out)])

        assert result.exit_code == 0
        assert json.loads(out.read_text()) == {}

    def test_broken_source_fails(self, runner, tmp_path):
        source = tmp_path / 'broken.jpg'
        source.write_bytes(b'nope')
        out = tmp_path / 'out.json'

        result = runner.invoke(cli, ['convert', str(source), '-o', str(out), '--retire'])

        assert result.exit_code == 1
        assert source.exists()

    def test_bad_size(self, runner, make_image):
        source = make_image('photo.jpg', (10, 10), fmt='JPEG')

        result = runner.invoke(cli, ['convert', str(source), '-s', 'thumb'])

        assert result.exit_code == 2


class TestPlan:
    """Tests for the plan command."""

    def test_prints_plan(self, runner, make_image, tmp_path):
        source = make_image('photo.jpg', (3000, 2000), fmt='JPEG')

        result = runner.invoke(cli, [
            'plan', str(source), '-s', 'thumbnail:150x150:crop', '-s', 'medium:300x300',
        ])

        assert result.exit_code == 0, result.output
        assert 'primary: 3000x2000 -> 1620x1080' in result.output
        assert 'thumbnail: center_crop 150x150 from (270, 0) 1080x1080' in result.output
        assert 'medium: fit 300x200' in result.output
        assert 'faces: unavailable' in result.output
        assert {p.name for p in tmp_path.iterdir()} == {'photo.jpg'}

    def test_rejects_unsupported(self, runner, make_image):
        source = make_image('anim.gif', (10, 10), fmt='GIF')

        result = runner.invoke(cli, ['plan', str(source)])

        assert result.exit_code == 2
