import json

from urlsweep.cli import EXIT_ALL_FAILED, EXIT_OK, EXIT_PRECONDITION, main


def test_summary_output(site_url, write_input, tmp_path, capsys):
    path = write_input([f'{site_url}/home', f'{site_url}/bad'])
    code = main([str(path), '-c', '2', '-t', '5'])
    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert 'Total URLs: 2' in out
    assert 'Succeeded: 1' in out
    assert f'Report: {tmp_path / "source_report.md"}' in out


def test_json_output(site_url, write_input, capsys):
    path = write_input([f'{site_url}/moved'])
    code = main([str(path), '--no-follow-redirect', '--json'])
    data = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert data['rows'][0]['title'] == 'Moved'


def test_status_lines_flag(site_url, write_input, capsys):
    path = write_input([f'200 10B 0.1s {site_url}/home', f'404 10B 0.1s {site_url}/missing'])
    main([str(path), '--status-lines', '--json'])
    data = json.loads(capsys.readouterr().out)
    assert [r['url'] for r in data['rows']] == [f'{site_url}/home']


def test_all_failed_exit_code(write_input):
    assert main([str(write_input(['nope']))]) == EXIT_ALL_FAILED


def test_precondition_exit_code(tmp_path, capsys):
    assert main([str(tmp_path / 'absent.txt')]) == EXIT_PRECONDITION
    assert 'Error:' in capsys.readouterr().err


def test_invalid_concurrency_exit_code(write_input):
    assert main([str(write_input(['a'])), '-c', '0']) == EXIT_PRECONDITION
