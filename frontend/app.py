from flask import Flask, render_template, request, jsonify
import logging
import requests

from odaneguard import config
from odaneguard.poller import AnalysisPoller, PollState

app = Flask(__name__, template_folder='templates')
logger = logging.getLogger("frontend")

BACKEND_URL = config.backend_url()
BACKEND_TIMEOUT = 60

ENDPOINTS = {
    'url': '/check-url',
    'email': '/check-email',
}


def _post_backend(path: str, payload: dict) -> dict:
    r = requests.post(f'{BACKEND_URL}{path}', json=payload, timeout=BACKEND_TIMEOUT)
    try:
        body = r.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {'message': r.text or 'Server error occurred'}
    if not r.ok:
        body.setdefault('status', 'error')
        body['backend_status'] = r.status_code
    return body


def _response_code(result: dict) -> int:
    if result.get('status') == 'success':
        return 200
    backend_status = result.pop('backend_status', None)
    # backend 4xx pass through unchanged
    if isinstance(backend_status, int) and 400 <= backend_status < 500:
        return backend_status
    return 502


def wait_for_analysis(analysis_id: str, url: str) -> dict:
    """Poll the backend until the analysis finishes, fails or times out."""
    logger.info("Analysis %s pending, polling backend", analysis_id)
    poller = AnalysisPoller(
        lambda: _post_backend('/check-analysis', {'analysis_id': analysis_id, 'url': url}),
        interval=config.poll_interval(),
        timeout=config.poll_timeout(),
    ).start()
    outcome = poller.wait()
    if outcome.state is PollState.SUCCESS:
        return outcome.payload
    if outcome.state is PollState.TIMEOUT:
        return {'status': 'error', 'message': 'Analysis timed out. Please try again.'}
    if outcome.payload:
        return outcome.payload
    return {'status': 'error', 'message': outcome.message or 'Analysis failed'}


@app.route('/', methods=['GET'])
def index():
    return render_template('index.html')


@app.route('/submit', methods=['POST'])
def submit():
    data = request.form or request.get_json(silent=True) or {}
    value = (data.get('input') or data.get('url') or '').strip()
    kind = data.get('type', 'url')
    if not value:
        return jsonify({'status': 'error', 'message': 'Please enter a value to scan'}), 400
    if kind not in ENDPOINTS:
        return jsonify({'status': 'error', 'message': f'unsupported scan type: {kind}'}), 400

    try:
        result = _post_backend(ENDPOINTS[kind], {'input': value})
    except requests.RequestException as e:
        return jsonify({'status': 'error', 'message': f'backend scan failed: {e}'}), 502

    if result.get('status') == 'pending':
        try:
            result = wait_for_analysis(result['analysis_id'], result['url'])
        except KeyError as e:
            return jsonify({'status': 'error', 'message': f'backend returned no {e}'}), 502

    code = _response_code(result)
    return jsonify(result), code


@app.route('/submit-pdf', methods=['POST'])
def submit_pdf():
    upload = request.files.get('file')
    if upload is None:
        return jsonify({'status': 'error', 'message': 'Please select a PDF file to scan'}), 400
    files = {'file': (upload.filename, upload.read(), upload.mimetype or 'application/pdf')}
    try:
        r = requests.post(f'{BACKEND_URL}/check-pdf', files=files, timeout=BACKEND_TIMEOUT)
        return jsonify(r.json()), r.status_code
    except (requests.RequestException, ValueError) as e:
        return jsonify({'status': 'error', 'message': f'backend pdf scan failed: {e}'}), 502


if __name__ == '__main__':
    logging.basicConfig(level=config.log_level())
    port = config.port(8080)
    app.run(host='0.0.0.0', port=port)
