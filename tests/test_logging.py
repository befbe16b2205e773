import logging

from tankobon.cli import setup_logging


def test_color_enabled_shows_emoji_and_ansi(capsys):
    setup_logging(verbose=False, force_color=True)
    logging.getLogger("test_color_enabled").info("hello color")
    err = capsys.readouterr().err
    assert "✅ INFO:" in err
    assert "\x1b[" in err


def test_color_disabled_no_ansi_but_emoji_present(capsys):
    setup_logging(verbose=False, force_color=False)
    logging.getLogger("test_color_disabled").warning("careful")
    err = capsys.readouterr().err
    assert "⚠️ WARNING: careful" in err
    assert "\x1b[" not in err


def test_debug_level_shows_debug_emoji(capsys):
    setup_logging(verbose=True, force_color=False)
    logging.getLogger("test_debug").debug("debugging")
    assert "🔧 DEBUG:" in capsys.readouterr().err


def test_loglevel_overrides_verbose(capsys):
    setup_logging(verbose=True, loglevel="WARN", force_color=False)
    log = logging.getLogger("test_loglevel")
    log.info("hidden")
    log.error("shown")
    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "❌ ERROR: shown" in err


def test_cli_loglevel_debug_shows_collection(run_cli, series, tmp_path):
    src = series([("Chapter 1", 2)])
    res = run_cli(["--path", src, "--dest", tmp_path / "out", "--title", "Dbg", "--loglevel", "DEBUG"])
    assert res.returncode == 0, f"tankobon failed: stdout={res.stdout} stderr={res.stderr}"
    assert "🔧 DEBUG:" in res.stderr
    assert "[collect] Chapter 1: 2 pages" in res.stderr
