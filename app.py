"""
Letterhead logo service: stamps a logo onto the pages of a PDF.

Install dependencies:
pip install -e .            (add [bgremoval] for background removal)

Run locally:
python app.py

Deploy with Procfile:
web: gunicorn app:app
"""

from flask import Flask, request, jsonify, send_file
from io import BytesIO
import base64
import binascii
import json
import logging

import requests
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

import background_removal
from background_removal import remove_background
from config import Config
from errors import (
    BackgroundRemovalError,
    DecodeError,
    InvalidParameterError,
    LetterheadError,
    PageProcessingError,
)
from overlay_logo import add_logo_to_pdf, download_image
from placement import parse_mode

logging.basicConfig(level=Config.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object(Config)


@app.after_request
def after_request(response):
    response.headers.add('Access-Control-Allow-Origin', '*')
    response.headers.add('Access-Control-Allow-Headers', 'Content-Type,Authorization')
    response.headers.add('Access-Control-Allow-Methods', 'GET,POST,OPTIONS')
    return response


def _parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _decode_base64(value, field):
    """Decode a data URL ("data:application/pdf;base64,...") or bare base64."""
    if not isinstance(value, str) or not value:
        raise InvalidParameterError(f'{field} must be a base64 string')
    payload = value
    if value.startswith('data:'):
        _, separator, payload = value.partition(',')
        if not separator:
            raise DecodeError(f'{field} is not a valid data URL')
    try:
        return base64.b64decode(''.join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f'{field} is not valid base64') from e


def _request_params():
    """Collect request fields from either a JSON body or a multipart form."""
    if request.files or request.form:
        params = request.form.to_dict()
        if 'pageConfigs' in params:
            try:
                params['pageConfigs'] = json.loads(params['pageConfigs'])
            except ValueError as e:
                raise InvalidParameterError('pageConfigs must be a JSON list') from e
        return params

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidParameterError('Request body must be a JSON object or multipart form')
    return data


def _read_input(params, name):
    """
    Fetch one binary input, looking in order at an uploaded file `name`,
    a base64 field `<name>Data` and a URL field `<name>Url`.
    """
    upload = request.files.get(name)
    if upload is not None:
        return upload.read()
    if params.get(f'{name}Data'):
        return _decode_base64(params[f'{name}Data'], f'{name}Data')
    if params.get(f'{name}Url'):
        url = params[f'{name}Url']
        logger.info("Downloading %s from %s", name, url)
        return download_image(url, timeout=app.config['DOWNLOAD_TIMEOUT'])
    raise InvalidParameterError(f'{name}Data is required')


def _error_response(e):
    if isinstance(e, HTTPException):
        return jsonify({'error': e.description}), e.code
    if isinstance(e, PageProcessingError):
        logger.error("Page %d failed: %s", e.page_ordinal, e, exc_info=e.__cause__ or e)
        return jsonify({'error': str(e), 'page': e.page_ordinal}), 422
    if isinstance(e, (DecodeError, InvalidParameterError)):
        logger.warning("Rejected request: %s", e)
        return jsonify({'error': str(e)}), 400
    if isinstance(e, BackgroundRemovalError):
        logger.error("Background removal failed: %s", e)
        return jsonify({'error': str(e)}), 503 if e.unavailable else 500
    if isinstance(e, LetterheadError):
        logger.error("Processing failed: %s", e, exc_info=e)
        return jsonify({'error': str(e)}), 500
    if isinstance(e, requests.RequestException):
        logger.warning("Download failed: %s", e)
        return jsonify({'error': f'Failed to download input: {e}'}), 502
    logger.exception("Unexpected error", exc_info=e)
    return jsonify({'error': 'Processing failed'}), 500


@app.route('/health', methods=['GET'])
def health():
    return jsonify({
        'status': 'healthy',
        'service': 'letterhead',
        'capabilities': {
            'rembg': background_removal.REMBG_AVAILABLE,
        }
    })


@app.route('/process-pdf', methods=['POST', 'OPTIONS'])
def process_pdf():
    """Overlay a logo onto a PDF and return the new PDF."""
    if request.method == 'OPTIONS':
        return '', 200

    try:
        params = _request_params()
        pdf_bytes = _read_input(params, 'pdf')
        logo_bytes = _read_input(params, 'logo')

        size = params.get('size', app.config['DEFAULT_LOGO_SIZE'])
        padding = params.get('padding', app.config['DEFAULT_PADDING'])
        mode = parse_mode(
            apply_to_all=_parse_bool(params.get('applyToAll'), default=True),
            position=params.get('position', app.config['DEFAULT_POSITION']),
            page_configs=params.get('pageConfigs'),
        )
        remove_bg = _parse_bool(params.get('removeBackground'))

        logger.info("Processing PDF (%d bytes) with %s, size=%s, padding=%s, removeBackground=%s",
                    len(pdf_bytes), mode, size, padding, remove_bg)

        result = add_logo_to_pdf(pdf_bytes, logo_bytes, size, padding, mode, remove_bg=remove_bg)
    except Exception as e:
        return _error_response(e)

    filename = secure_filename(params.get('filename') or '') or app.config['OUTPUT_FILENAME']
    if not filename.lower().endswith('.pdf'):
        filename += '.pdf'

    return send_file(
        BytesIO(result),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )


@app.route('/remove-background', methods=['POST', 'OPTIONS'])
def remove_background_endpoint():
    """Remove background from an image using rembg"""
    if request.method == 'OPTIONS':
        return '', 200

    try:
        params = _request_params()
        image_bytes = _read_input(params, 'image')
        logger.info("Removing background from %d byte image", len(image_bytes))
        result = remove_background(image_bytes)
    except Exception as e:
        return _error_response(e)

    logger.info("Background removed successfully")
    return send_file(BytesIO(result), mimetype='image/png')


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=False)
