import csv
import io


def test_scan_endpoint(client, site_url, write_input):
    path = write_input([f'{site_url}/home', f'{site_url}/missing'])
    r = client.post('/scan', json={'inputFilePath': str(path), 'concurrency': 2, 'timeoutSeconds': 5,
                                   'followRedirect': True})
    assert r.status_code == 200
    data = r.get_json()
    assert data['totalUrls'] == 2
    assert data['succeeded'] == 1
    assert data['failed'] == 1
    assert data['total200Lines'] == 1
    assert data['reportPath'].endswith('source_report.md')
    assert [row['url'] for row in data['rows']] == [f'{site_url}/home', f'{site_url}/missing']
    assert set(data['rows'][0]) == {'url', 'title', 'components', 'error'}


def test_scan_endpoint_csv(client, site_url, write_input):
    path = write_input([f'{site_url}/home'])
    r = client.post('/scan?format=csv', json={'inputFilePath': str(path)})
    assert r.status_code == 200
    assert r.mimetype == 'text/csv'
    rows = list(csv.reader(io.StringIO(r.get_data(as_text=True))))
    assert rows[0] == ['url', 'title', 'components', 'error']
    assert rows[1][0] == f'{site_url}/home'
    assert rows[1][1] == 'Home'


def test_missing_input_file_is_404(client, tmp_path):
    r = client.post('/scan', json={'inputFilePath': str(tmp_path / 'absent.txt')})
    assert r.status_code == 404
    body = r.get_json()
    assert body['error'] is True
    assert body['error_code'] == 'INPUT_FILE_ERROR'


def test_invalid_values_are_400(client, write_input):
    path = write_input(['http://x.example/'])
    for payload in ({'inputFilePath': str(path), 'concurrency': 0},
                    {'inputFilePath': str(path), 'timeoutSeconds': -1},
                    {'inputFilePath': str(path), 'concurrency': 'many'},
                    {'inputFilePath': str(path), 'concurrency': True},
                    {'inputFilePath': ''}):
        r = client.post('/scan', json=payload)
        assert r.status_code == 400, payload
        assert r.get_json()['error_code'] == 'VALIDATION_ERROR'


def test_non_json_body(client):
    r = client.post('/scan', data='hello', content_type='text/plain')
    assert r.status_code == 400


def test_empty_input_is_400(client, write_input):
    r = client.post('/scan', json={'inputFilePath': str(write_input(['']))})
    assert r.status_code == 400
    assert r.get_json()['error_code'] == 'EMPTY_INPUT'


def test_healthz(client):
    r = client.get('/healthz')
    assert r.status_code == 200
    assert r.get_json()['status'] == 'ok'


def test_metrics_exposition(client):
    r = client.get('/metrics')
    assert r.status_code == 200
    assert b'urlsweep_rows_total' in r.data
