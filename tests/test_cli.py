import main


def test_cli_prints_report(long_csv, capsys):
    assert main.main([str(long_csv(20))]) == 0

    out = capsys.readouterr().out
    assert "Samples:        20" in out
    assert "Grade: A" in out


def test_cli_rejects_wrong_file(tmp_path, capsys):
    path = tmp_path / 'results.csv'
    path.write_text("POSITION,NUMBER\n1,78\n")

    assert main.main([str(path)]) == 1
    assert "Invalid File" in capsys.readouterr().out


def test_cli_rejects_bad_config(long_csv, tmp_path, capsys):
    config = tmp_path / 'bad.yaml'
    config.write_text("coach:\n  bogus: 1\n")

    assert main.main([str(long_csv(5)), '--config', str(config)]) == 1
    assert "Invalid settings" in capsys.readouterr().out


def test_cli_rejects_malformed_config(long_csv, tmp_path, capsys):
    config = tmp_path / 'broken.yaml'
    config.write_text("coach: [unclosed\n")

    assert main.main([str(long_csv(5)), '--config', str(config)]) == 1
    assert "Invalid settings" in capsys.readouterr().out
