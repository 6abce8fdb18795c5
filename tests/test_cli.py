"""Tests for route_registry.cli — commands via typer.testing.CliRunner."""

from typer.testing import CliRunner

from route_registry import __version__
from route_registry.cli import app

runner = CliRunner()

EVENTS_SOURCE = '''
from route_registry import auto_register, get


@auto_register("/events")
@get("/search")
def search(request):
    pass
'''


def write_sources(tmp_path, source=EVENTS_SOURCE):
    src = tmp_path / "src"
    src.mkdir()
    (src / "events.py").write_text(source)
    return src


class TestBuildCommand:
    """Tests for 'route-registry build'."""

    def test_prints_module(self, tmp_path):
        src = write_sources(tmp_path)
        result = runner.invoke(app, ["build", str(src), "--module-key", "/events", "--use-scope"])

        assert result.exit_code == 0, result.output
        assert "def register_service(cfg):" in result.output
        assert "cfg.scope('/events')" in result.output
        assert ".service(search)" in result.output
        assert "from events import search" in result.output

    def test_writes_output_file(self, tmp_path):
        src = write_sources(tmp_path)
        target = tmp_path / "out" / "_routes.py"
        result = runner.invoke(app, ["build", str(src), "-m", "/events", "-o", str(target)])

        assert result.exit_code == 0, result.output
        text = target.read_text()
        assert "def list_routes(console=None):" in text
        assert "cfg.scope('')" in text

    def test_with_workers(self, tmp_path):
        src = write_sources(tmp_path)
        result = runner.invoke(app, ["build", str(src), "-m", "/events", "--workers", "4"])
        assert result.exit_code == 0, result.output

    def test_requires_module_key(self, tmp_path):
        src = write_sources(tmp_path)
        result = runner.invoke(app, ["build", str(src)])
        assert result.exit_code != 0

    def test_invalid_declaration_fails(self, tmp_path):
        src = write_sources(tmp_path, "@auto_register('/events')\ndef search():\n    pass\n")
        result = runner.invoke(app, ["build", str(src), "-m", "/events"])

        assert result.exit_code == 1
        assert "search" in result.output
        assert "def register_service" not in result.output


class TestRoutesCommand:
    """Tests for 'route-registry routes'."""

    def test_prints_table(self, tmp_path):
        src = write_sources(tmp_path)
        result = runner.invoke(app, ["routes", str(src)])

        assert result.exit_code == 0, result.output
        assert "List of automatically generated routes" in result.output
        assert "/search" in result.output
        assert "GET" in result.output

    def test_no_routes(self, tmp_path):
        src = write_sources(tmp_path, "def plain():\n    pass\n")
        result = runner.invoke(app, ["routes", str(src)])

        assert result.exit_code == 0
        assert "No routes registered." in result.output

    def test_missing_path_fails(self, tmp_path):
        result = runner.invoke(app, ["routes", str(tmp_path / "nowhere")])
        assert result.exit_code == 1
        assert "does not exist" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
