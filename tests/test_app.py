"""
tests/test_app.py

HTTP surface of the letterhead service, driven through Flask's test client.
"""

import base64
import json
import unittest
from io import BytesIO
from unittest import mock

import requests

from app import app
from errors import BackgroundRemovalError
from pdf_factory import image_draws, make_blank_pdf, make_logo, read_pdf


def _data_url(data, mime):
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


class TestProcessPdf(unittest.TestCase):
    def setUp(self):
        self.client = app.test_client()
        self.pdf = make_blank_pdf([(612, 792), (300, 300)])
        self.logo = make_logo(400, 200)

    def _post(self, **fields):
        body = {
            'pdfData': _data_url(self.pdf, 'application/pdf'),
            'logoData': _data_url(self.logo, 'image/png'),
        }
        body.update(fields)
        return self.client.post('/process-pdf', json=body)

    def test_json_request_with_defaults(self):
        response = self._post()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, 'application/pdf')
        self.assertIn('letterhead.pdf', response.headers['Content-Disposition'])
        self.assertEqual(response.headers['Access-Control-Allow-Origin'], '*')

        pages = read_pdf(response.data).pages
        # Defaults: top-right, size 100, padding 30
        self.assertEqual(image_draws(pages[0]), [('/Logo', [100, 0, 0, 50, 482, 712])])
        self.assertEqual(image_draws(pages[1]), [('/Logo', [100, 0, 0, 50, 170, 220])])

    def test_per_page_configs(self):
        response = self._post(size=100, padding=20, applyToAll=False,
                              pageConfigs=[{'pageNumber': 1, 'position': 'bottom-left'}])
        self.assertEqual(response.status_code, 200)

        pages = read_pdf(response.data).pages
        self.assertEqual(image_draws(pages[0]), [('/Logo', [100, 0, 0, 50, 20, 20])])
        self.assertEqual(image_draws(pages[1]), [])

    def test_bare_base64_and_custom_filename(self):
        response = self.client.post('/process-pdf', json={
            'pdfData': base64.b64encode(self.pdf).decode('ascii'),
            'logoData': base64.b64encode(self.logo).decode('ascii'),
            'position': 'bottom-right',
            'filename': '../quarterly report',
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn('quarterly_report.pdf', response.headers['Content-Disposition'])

    def test_multipart_upload(self):
        response = self.client.post('/process-pdf', data={
            'pdf': (BytesIO(self.pdf), 'input.pdf'),
            'logo': (BytesIO(self.logo), 'logo.png'),
            'size': '50',
            'padding': '0',
            'applyToAll': 'false',
            'pageConfigs': json.dumps([{'pageNumber': 2, 'position': 'top-left'}]),
        }, content_type='multipart/form-data')
        self.assertEqual(response.status_code, 200)

        pages = read_pdf(response.data).pages
        self.assertEqual(image_draws(pages[0]), [])
        self.assertEqual(image_draws(pages[1]), [('/Logo', [50, 0, 0, 25, 0, 275])])

    def test_urls_are_downloaded(self):
        downloads = {'https://example.com/a.pdf': self.pdf, 'https://example.com/l.png': self.logo}
        with mock.patch('app.download_image', side_effect=lambda url, timeout: downloads[url]) as fetch:
            response = self.client.post('/process-pdf', json={
                'pdfUrl': 'https://example.com/a.pdf',
                'logoUrl': 'https://example.com/l.png',
            })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(fetch.call_count, 2)

    def test_download_failure(self):
        with mock.patch('app.download_image', side_effect=requests.ConnectionError('refused')):
            response = self.client.post('/process-pdf', json={
                'pdfUrl': 'https://example.com/a.pdf',
                'logoData': _data_url(self.logo, 'image/png'),
            })
        self.assertEqual(response.status_code, 502)

    def test_validation_errors(self):
        cases = [
            {'size': 0},
            {'padding': -5},
            {'position': 'center'},
            {'applyToAll': False, 'pageConfigs': [{'pageNumber': 0, 'position': 'top-left'}]},
            {'pdfData': 'data:application/pdf;base64,!!!'},
            {'pdfData': 'data:application/pdf;base64'},
            {'pdfData': _data_url(b'not a pdf', 'application/pdf')},
            {'logoData': _data_url(b'not an image', 'image/png')},
            {'logoData': None},
        ]
        for fields in cases:
            response = self._post(**fields)
            self.assertEqual(response.status_code, 400, fields)
            self.assertIn('error', response.get_json())

    def test_data_url_without_payload_is_rejected(self):
        with self.assertLogs('app', level='WARNING') as logs:
            response = self._post(pdfData='data:application/pdf;base64')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {'error': 'pdfData is not a valid data URL'})
        self.assertIn('Rejected request: pdfData is not a valid data URL', logs.output[0])

    def test_non_json_body(self):
        response = self.client.post('/process-pdf', data='hello', content_type='text/plain')
        self.assertEqual(response.status_code, 400)

    def test_page_failure_returns_page_number(self):
        with mock.patch('overlay_logo.draw_image', side_effect=ValueError('bad page')):
            response = self._post()
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()['page'], 1)

    def test_unexpected_error_is_generic(self):
        with mock.patch('app.add_logo_to_pdf', side_effect=RuntimeError('secret detail')):
            response = self._post()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {'error': 'Processing failed'})

    def test_remove_background_flag(self):
        with mock.patch('overlay_logo.remove_background', return_value=self.logo) as remove:
            response = self._post(removeBackground=True)
        self.assertEqual(response.status_code, 200)
        remove.assert_called_once_with(self.logo)

    def test_options_preflight(self):
        response = self.client.options('/process-pdf')
        self.assertEqual(response.status_code, 200)


class TestRemoveBackground(unittest.TestCase):
    def setUp(self):
        self.client = app.test_client()
        self.image = make_logo(20, 20, mode='RGB')

    def test_returns_png(self):
        with mock.patch('app.remove_background', return_value=b'png-bytes'):
            response = self.client.post('/remove-background', json={
                'imageData': _data_url(self.image, 'image/png'),
            })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, 'image/png')
        self.assertEqual(response.data, b'png-bytes')

    def test_unavailable(self):
        error = BackgroundRemovalError('rembg not available. Install rembg package.', unavailable=True)
        with mock.patch('app.remove_background', side_effect=error):
            response = self.client.post('/remove-background', data={
                'image': (BytesIO(self.image), 'logo.png'),
            }, content_type='multipart/form-data')
        self.assertEqual(response.status_code, 503)

    def test_missing_image(self):
        response = self.client.post('/remove-background', json={})
        self.assertEqual(response.status_code, 400)


class TestHealth(unittest.TestCase):
    def test_health(self):
        response = app.test_client().get('/health')
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body['status'], 'healthy')
        self.assertIn('rembg', body['capabilities'])


if __name__ == '__main__':
    unittest.main()
