import io
import time
import uuid
import zipfile
from pathlib import Path

import pytest

from wavm_glue_py import server

from wasm_builder import WasmModule, i32_const

OBJECT = b'\x7fELF\x02\x01'


def module_bytes(with_object=True):
    module = WasmModule()
    module.add_function(module.add_type())
    module.export_function("_start", 0)
    module.add_memory(1)
    module.add_data(i32_const(0), b'\x01\x02')
    if with_object:
        module.add_custom("wavm.precompiled_object", OBJECT)
    return module.encode()


@pytest.fixture
def client(tmp_path):
    server.app.config.update(
        TESTING=True,
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
        OUTPUT_FOLDER=str(tmp_path / "outputs"),
    )
    with server.app.test_client() as client:
        yield client
    with server.jobs_lock:
        server.jobs.clear()


def upload(client, data, filename="prog.wasm", **form):
    form['file'] = (io.BytesIO(data), filename)
    return client.post('/api/convert', data=form, content_type='multipart/form-data')


def test_convert_and_download(client):
    response = upload(client, module_bytes(), module_name="prog")
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'completed'
    assert body['files'] == ['prog_glue.h', 'prog.o']
    job_id = body['job_id']

    response = client.get(f'/api/download/{job_id}/prog.o')
    assert response.status_code == 200
    assert response.data == OBJECT

    response = client.get(f'/api/download/{job_id}/prog_glue.h')
    assert b'#ifndef prog_GLUE_H' in response.data


def test_module_name_defaults_to_upload_stem(client):
    body = upload(client, module_bytes(), filename="game.wasm").get_json()
    assert body['files'] == ['game_glue.h', 'game.o']


def test_zip_download(client):
    job_id = upload(client, module_bytes(), module_name="prog").get_json()['job_id']
    response = client.get(f'/api/download/{job_id}/all.zip')
    assert response.status_code == 200
    with zipfile.ZipFile(io.BytesIO(response.data)) as zf:
        assert sorted(zf.namelist()) == ['prog.o', 'prog_glue.h']
        assert zf.read('prog.o') == OBJECT


def test_job_status(client):
    job_id = upload(client, module_bytes(with_object=False), module_name="plain").get_json()['job_id']
    body = client.get(f'/api/jobs/{job_id}').get_json()
    assert body['id'] == job_id
    assert body['status'] == 'completed'
    assert body['files'] == ['plain_glue.h']
    assert body['error'] is None


def test_no_file(client):
    response = client.post('/api/convert', data={}, content_type='multipart/form-data')
    assert response.status_code == 400


def test_rejects_non_wasm_upload(client):
    response = upload(client, b'MZ\x90\x00 not wasm')
    assert response.status_code == 400
    assert 'Invalid file' in response.get_json()['error']
    assert server.jobs == {}


def test_failed_conversion(client):
    response = upload(client, b'\x00asm\x02\x00\x00\x00', module_name="broken")
    assert response.status_code == 422
    body = response.get_json()
    assert body['status'] == 'failed'
    assert 'Unsupported WebAssembly version' in body['error']

    response = client.get(f"/api/download/{body['job_id']}/broken_glue.h")
    assert response.status_code == 400


def test_unknown_job(client):
    assert client.get(f'/api/jobs/{uuid.uuid4()}').status_code == 404
    assert client.get('/api/jobs/not-a-uuid').status_code == 404


def test_download_of_unlisted_file(client):
    job_id = upload(client, module_bytes(), module_name="prog").get_json()['job_id']
    assert client.get(f'/api/download/{job_id}/other.txt').status_code == 404


def test_docs(client):
    body = client.get('/api/docs').get_json()
    assert 'POST /api/convert' in body['endpoints']


def test_expire_jobs(client):
    job_id = upload(client, module_bytes(), module_name="prog").get_json()['job_id']
    job = server.get_job(job_id)
    output_dir = Path(job.output_dir)
    assert output_dir.exists()

    assert server.expire_jobs(now=time.time()) == 0
    assert server.expire_jobs(now=time.time() + server.JOB_RETENTION_SECONDS + 1) == 1
    assert server.get_job(job_id) is None
    assert not output_dir.exists()


def test_unexpected_error_marks_job_failed(client, monkeypatch):
    def broken_convert(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(server, "convert", broken_convert)
    response = upload(client, module_bytes(), module_name="prog")
    assert response.status_code == 422
    body = response.get_json()
    assert body['status'] == 'failed'
    assert 'disk full' in body['error']
    assert server.get_job(body['job_id']).status == 'failed'
