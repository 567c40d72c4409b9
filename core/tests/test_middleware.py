import logging

from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase

from core.middleware import REQUEST_ID_HEADER, RequestIDFilter, RequestIDMiddleware, get_request_id


class TestRequestIDMiddleware(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.seen = {}

        def view(request):
            self.seen["request"] = request.request_id
            self.seen["context"] = get_request_id()
            return HttpResponse("ok")

        self.middleware = RequestIDMiddleware(view)

    def test_client_id_is_propagated(self):
        request = self.factory.get("/", HTTP_X_REQUEST_ID="abc-123")
        response = self.middleware(request)
        self.assertEqual(response[REQUEST_ID_HEADER], "abc-123")
        self.assertEqual(self.seen, {"request": "abc-123", "context": "abc-123"})

    def test_id_generated_when_missing_or_unsafe(self):
        for headers in ({}, {"HTTP_X_REQUEST_ID": "bad id\nwith newline"}):
            response = self.middleware(self.factory.get("/", **headers))
            generated = response[REQUEST_ID_HEADER]
            self.assertEqual(len(generated), 32)
            self.assertEqual(self.seen["request"], generated)

    def test_context_reset_after_request(self):
        self.middleware(self.factory.get("/", HTTP_X_REQUEST_ID="abc-123"))
        self.assertEqual(get_request_id(), "-")


class TestRequestIDFilter(SimpleTestCase):
    def test_stamps_records(self):
        record = logging.LogRecord("apps", logging.INFO, __file__, 1, "hello", None, None)
        self.assertTrue(RequestIDFilter().filter(record))
        self.assertEqual(record.request_id, "-")
