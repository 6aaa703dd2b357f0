"""
Tests for the Caesar HTTP client against a mocked transport.
"""
import json
import unittest

import httpx

from marketlens.research.caesar_client import CaesarClient, ResearchProviderError


def make_client(handler, **kwargs) -> CaesarClient:
    return CaesarClient(
        api_key="test-key",
        base_url="https://caesar.test",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs
    )


class TestCaesarClient(unittest.IsolatedAsyncioTestCase):

    async def test_submit_sends_query_with_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"job_id": "abc-1"})

        client = make_client(handler)
        job_id = await client.submit("Will BTC hit 100k?", 4)
        await client.close()

        self.assertEqual(job_id, "abc-1")
        self.assertEqual(seen["method"], "POST")
        self.assertEqual(seen["url"], "https://caesar.test/research")
        self.assertEqual(seen["auth"], "Bearer test-key")
        self.assertEqual(seen["body"], {"query": "Will BTC hit 100k?", "compute_units": 4})

    async def test_submit_accepts_plain_id(self):
        client = make_client(lambda request: httpx.Response(201, json={"id": 42}))
        self.assertEqual(await client.submit("q", 1), "42")
        await client.close()

    async def test_submit_without_id_fails(self):
        client = make_client(lambda request: httpx.Response(200, json={"status": "queued"}))
        with self.assertRaises(ResearchProviderError):
            await client.submit("q", 1)
        await client.close()

    async def test_http_error_status(self):
        client = make_client(lambda request: httpx.Response(500, text="internal error"))
        with self.assertRaises(ResearchProviderError):
            await client.submit("q", 1)
        await client.close()

    async def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with self.assertRaises(ResearchProviderError):
            await client.get_status("abc-1")
        await client.close()

    async def test_timeout_retried_then_raised(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler, retry_attempts=3)
        with self.assertRaises(ResearchProviderError):
            await client.submit("q", 1)
        await client.close()
        self.assertEqual(len(calls), 3)

    async def test_timeout_then_success(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectTimeout("slow", request=request)
            return httpx.Response(200, json={"job_id": "late"})

        client = make_client(handler)
        self.assertEqual(await client.submit("q", 1), "late")
        await client.close()

    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with self.assertRaises(ResearchProviderError):
            await client.submit("q", 1)
        await client.close()

    async def test_get_status_parses_citations(self):
        payload = {
            "id": "abc-1",
            "status": "completed",
            "result": "Underpriced.",
            "citations": [
                {"id": "c1", "url": "https://a.example", "title": "A", "snippet": "a", "relevanceScore": 0.9},
                {"id": "c2", "url": "https://b.example", "title": "B", "snippet": "b", "relevance_score": 0.4},
            ],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/research/abc-1")
            return httpx.Response(200, json=payload)

        client = make_client(handler)
        status = await client.get_status("abc-1")
        await client.close()

        self.assertEqual(status.status, "completed")
        self.assertEqual(status.result, "Underpriced.")
        self.assertEqual([c.relevance_score for c in status.citations], [0.9, 0.4])

    async def test_get_status_rejects_unknown_status(self):
        client = make_client(lambda request: httpx.Response(200, json={"status": "researching"}))
        with self.assertRaises(ResearchProviderError):
            await client.get_status("abc-1")
        await client.close()


if __name__ == "__main__":
    unittest.main()
