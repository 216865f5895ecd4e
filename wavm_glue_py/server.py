"""
wavm-glue Flask Server

Features:
- Single-request module upload and conversion
- Per-job artifact downloads (single file or ZIP)
- Job expiry with a background cleanup thread
"""

import io
import os
import re
import time
import uuid
import shutil
import zipfile
import threading
import traceback
from pathlib import Path
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field
from flask import Flask, request, jsonify, send_file

from werkzeug.utils import secure_filename

from .config import Config
from .converter import convert, write_outputs
from .errors import GlueError
from .formats.wasm_structures import WASM_MAGIC

app = Flask(__name__)

# Configuration
app.config['MAX_CONTENT_LENGTH'] = 256 * 1024 * 1024  # 256MB max upload
app.config['UPLOAD_FOLDER'] = '/tmp/wavm_glue_uploads'
app.config['OUTPUT_FOLDER'] = '/tmp/wavm_glue_outputs'
app.config['GLUE_CONFIG'] = None  # optional path to a config.json


@dataclass
class Job:
    """Represents a conversion job."""
    id: str
    status: str = 'created'  # created, processing, completed, failed
    error: Optional[str] = None
    created: float = field(default_factory=time.time)
    module_name: str = ''
    input_path: Optional[str] = None
    upload_dir: str = ''
    output_dir: str = ''
    output_files: list = field(default_factory=list)


# Job storage
jobs: Dict[str, Job] = {}
jobs_lock = threading.Lock()


def ensure_dirs():
    """Ensure upload and output directories exist."""
    Path(app.config['UPLOAD_FOLDER']).mkdir(parents=True, exist_ok=True)
    Path(app.config['OUTPUT_FOLDER']).mkdir(parents=True, exist_ok=True)


def get_job(job_id: str) -> Optional[Job]:
    """Get a job by ID with validation."""
    try:
        uuid.UUID(job_id)
    except ValueError:
        return None

    with jobs_lock:
        return jobs.get(job_id)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent path traversal."""
    filename = secure_filename(filename)
    filename = re.sub(r'[^\w\-_\.]', '_', filename)
    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:250] + ext
    return filename


def validate_file_magic(filepath: str) -> Tuple[bool, Optional[str]]:
    """Check that a file starts with the WebAssembly magic."""
    with open(filepath, 'rb') as f:
        data = f.read(4)
    if len(data) < 4:
        return False, "File too small"
    if int.from_bytes(data, 'little') != WASM_MAGIC:
        return False, "Not a WebAssembly module"
    return True, None


def process_job(job: Job) -> None:
    """Run the conversion for a job and record its outcome."""
    job.status = 'processing'
    try:
        config = Config.load(Path(app.config['GLUE_CONFIG']) if app.config['GLUE_CONFIG'] else None)
        data = Path(job.input_path).read_bytes()
        result = convert(data, str(Path(job.output_dir) / job.module_name), config)
        written = write_outputs(result, config)
    except GlueError as e:
        job.status = 'failed'
        job.error = str(e)
        return
    except Exception as e:
        job.status = 'failed'
        job.error = f'Internal error: {e}'
        traceback.print_exc()
        return

    job.output_files = [p.name for p in written]
    job.status = 'completed'


def job_summary(job: Job) -> dict:
    return {
        'id': job.id,
        'status': job.status,
        'module_name': job.module_name,
        'error': job.error,
        'files': job.output_files,
        'created': job.created
    }


# ============== Routes ==============

@app.route('/api/convert', methods=['POST'])
def api_convert():
    """Upload a module and convert it."""
    ensure_dirs()

    if 'file' not in request.files:
        return jsonify({'error': 'No file uploaded'}), 400

    upload = request.files['file']
    filename = sanitize_filename(upload.filename or '')
    if not filename:
        return jsonify({'error': 'Invalid filename'}), 400

    module_name = sanitize_filename(request.form.get('module_name') or Path(filename).stem)
    if not module_name:
        return jsonify({'error': 'Invalid module name'}), 400

    job_id = str(uuid.uuid4())
    job = Job(
        id=job_id,
        module_name=module_name,
        upload_dir=str(Path(app.config['UPLOAD_FOLDER']) / job_id),
        output_dir=str(Path(app.config['OUTPUT_FOLDER']) / job_id)
    )
    Path(job.upload_dir).mkdir(parents=True, exist_ok=True)
    Path(job.output_dir).mkdir(parents=True, exist_ok=True)

    filepath = Path(job.upload_dir) / filename
    upload.save(str(filepath))

    valid, error = validate_file_magic(str(filepath))
    if not valid:
        shutil.rmtree(job.upload_dir, ignore_errors=True)
        shutil.rmtree(job.output_dir, ignore_errors=True)
        return jsonify({'error': f'Invalid file: {error}'}), 400

    job.input_path = str(filepath)
    with jobs_lock:
        jobs[job_id] = job

    process_job(job)

    if job.status == 'failed':
        return jsonify({'job_id': job_id, 'status': job.status, 'error': job.error}), 422

    return jsonify({'job_id': job_id, 'status': job.status, 'files': job.output_files})


@app.route('/api/jobs/<job_id>')
def get_job_status(job_id: str):
    """Get job status."""
    job = get_job(job_id)
    if not job:
        return jsonify({'error': 'Job not found'}), 404

    return jsonify(job_summary(job))


@app.route('/api/download/<job_id>/<filename>')
def download_file(job_id: str, filename: str):
    """Download an output file."""
    job = get_job(job_id)
    if not job:
        return jsonify({'error': 'Job not found'}), 404

    if job.status != 'completed':
        return jsonify({'error': 'Job not completed'}), 400

    safe_filename = sanitize_filename(filename)
    if safe_filename not in job.output_files:
        return jsonify({'error': 'File not found'}), 404

    filepath = (Path(job.output_dir) / safe_filename).resolve()

    # Prevent path traversal
    if not str(filepath).startswith(str(Path(job.output_dir).resolve())):
        return jsonify({'error': 'Invalid path'}), 400

    if not filepath.exists():
        return jsonify({'error': 'File not found'}), 404

    return send_file(str(filepath), as_attachment=True)


@app.route('/api/download/<job_id>/all.zip')
def download_all_zip(job_id: str):
    """Download all output files as a ZIP archive."""
    job = get_job(job_id)
    if not job:
        return jsonify({'error': 'Job not found'}), 404

    if job.status != 'completed':
        return jsonify({'error': 'Job not completed'}), 400

    # Create ZIP in memory
    zip_buffer = io.BytesIO()
    with zipfile.ZipFile(zip_buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
        for filename in job.output_files:
            filepath = Path(job.output_dir) / filename
            if filepath.exists():
                zf.write(filepath, filename)

    zip_buffer.seek(0)

    return send_file(
        zip_buffer,
        mimetype='application/zip',
        as_attachment=True,
        download_name=f'{job.module_name}_{job_id[:8]}.zip'
    )


@app.route('/api/docs')
def api_docs():
    """API documentation."""
    return jsonify({
        'name': 'wavm-glue API',
        'version': '1.0.0',
        'endpoints': {
            'POST /api/convert': {
                'description': 'Upload a WAVM-precompiled module and convert it',
                'content_type': 'multipart/form-data',
                'fields': {
                    'file': 'WebAssembly module',
                    'module_name': 'output module name (default: upload file stem)'
                },
                'response': {'job_id': 'uuid', 'status': 'completed|failed', 'files': ['string']}
            },
            'GET /api/jobs/{id}': {
                'description': 'Get job status'
            },
            'GET /api/download/{id}/{filename}': {
                'description': 'Download output file'
            },
            'GET /api/download/{id}/all.zip': {
                'description': 'Download all output files as ZIP'
            }
        },
        'limits': {
            'max_upload_size': '256 MB',
            'job_retention': '30 minutes'
        }
    })


# ============== Cleanup ==============

# Cleanup settings
JOB_RETENTION_SECONDS = 30 * 60  # 30 minutes
CLEANUP_INTERVAL_SECONDS = 60  # Check every minute


def expire_jobs(now: Optional[float] = None) -> int:
    """Delete jobs older than JOB_RETENTION_SECONDS; returns how many were removed."""
    current_time = time.time() if now is None else now
    with jobs_lock:
        expired = [job for job in jobs.values() if current_time - job.created > JOB_RETENTION_SECONDS]
        for job in expired:
            del jobs[job.id]

    for job in expired:
        shutil.rmtree(job.upload_dir, ignore_errors=True)
        shutil.rmtree(job.output_dir, ignore_errors=True)

    return len(expired)


def cleanup_old_jobs():
    """Periodically expire old jobs."""
    while True:
        time.sleep(CLEANUP_INTERVAL_SECONDS)
        removed = expire_jobs()
        if removed:
            print(f"Cleaned up {removed} old job(s)")


def run(host: str = '0.0.0.0', port: int = 5000) -> None:
    """Start the server with its cleanup thread."""
    ensure_dirs()

    cleanup_thread = threading.Thread(target=cleanup_old_jobs, daemon=True)
    cleanup_thread.start()

    print("=" * 60)
    print("wavm-glue Server")
    print("=" * 60)
    print(f"API Docs: http://localhost:{port}/api/docs")
    print("=" * 60)

    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == '__main__':
    run()
