import asyncio
import json
import unittest

import httpx

from taxcheck import llm_provider
from taxcheck.settings import AiProviderConfig

CONFIG = AiProviderConfig(
    endpoint="https://ai.example.com",
    api_key="test-key",
    deployment="gpt-4o-mini",
)


def _complete(handler, **kwargs):
    return asyncio.run(
        llm_provider.complete_chat_with_azure_openai(
            CONFIG,
            system_prompt="system",
            prompt="user prompt",
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
    )


class TestJsonFenceUnwrapping(unittest.TestCase):
    def test_unwraps_json_tagged_fence(self):
        content = '```json\n{"riskLevel":"LOW","summary":"ok","detectedIssues":[]}\n```'

        parsed = llm_provider.parse_json_content(content)

        self.assertEqual(parsed, {"riskLevel": "LOW", "summary": "ok", "detectedIssues": []})

    def test_unwraps_untagged_fence(self):
        self.assertEqual(llm_provider.unwrap_json_fence('```\n{"a": 1}\n```'), '{"a": 1}')

    def test_leaves_plain_json_untouched(self):
        self.assertEqual(llm_provider.unwrap_json_fence('  {"a": 1}  '), '{"a": 1}')

    def test_returns_none_for_undecodable_content(self):
        self.assertIsNone(llm_provider.parse_json_content("I think the risk is low."))
        self.assertIsNone(llm_provider.parse_json_content("```json\n{broken\n```"))
        self.assertIsNone(llm_provider.parse_json_content(""))
        self.assertIsNone(llm_provider.parse_json_content(None))

    def test_rejects_non_standard_constants(self):
        for literal in ("NaN", "Infinity", "-Infinity"):
            content = f'{{"riskLevel":"LOW","summary":"ok","detectedIssues":[],"confidence":{literal}}}'
            self.assertIsNone(llm_provider.parse_json_content(content), literal)

    def test_backticks_inside_unfenced_json_are_kept(self):
        content = json.dumps({"summary": "Run ```recompute``` before filing."})

        self.assertEqual(llm_provider.unwrap_json_fence(content), content)
        self.assertEqual(
            llm_provider.parse_json_content(content),
            {"summary": "Run ```recompute``` before filing."},
        )

    def test_text_around_a_fence_is_not_unwrapped(self):
        content = 'Here you go:\n```json\n{"a": 1}\n```'

        self.assertIsNone(llm_provider.parse_json_content(content))


class TestChatCompletionParsing(unittest.TestCase):
    def test_extracts_first_choice_content(self):
        payload = {"choices": [{"message": {"role": "assistant", "content": '{"a": 1}'}}]}

        self.assertEqual(llm_provider._extract_chat_completion_text(payload), '{"a": 1}')

    def test_missing_content_returns_none(self):
        for payload in ({}, {"choices": []}, {"choices": [{}]}, {"choices": [{"message": {"content": ""}}]}, []):
            self.assertIsNone(llm_provider._extract_chat_completion_text(payload))


class TestCompleteChatWithAzureOpenAi(unittest.TestCase):
    def test_sends_chat_request_with_api_key_and_returns_content(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            captured["timeout"] = request.extensions.get("timeout")
            return httpx.Response(200, json={"choices": [{"message": {"content": "CONNECTED"}}]})

        result = _complete(handler)

        self.assertEqual(result.status, "success")
        self.assertEqual(result.raw_response, "CONNECTED")
        self.assertEqual(
            captured["url"],
            "https://ai.example.com/openai/deployments/gpt-4o-mini/chat/completions"
            "?api-version=2023-12-01-preview",
        )
        self.assertEqual(captured["headers"]["api-key"], "test-key")
        self.assertEqual([message["role"] for message in captured["body"]["messages"]], ["system", "user"])
        self.assertEqual(captured["body"]["response_format"], {"type": "json_object"})
        self.assertEqual(captured["timeout"]["read"], 8.0)

    def test_http_error_includes_provider_message(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "Access denied"}})

        result = _complete(handler)

        self.assertEqual(result.status, "error")
        self.assertEqual(result.warnings, ["Azure OpenAI request failed with HTTP 401: Access denied"])

    def test_timeout_is_reported_as_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = _complete(handler, timeout=2.5)

        self.assertEqual(result.status, "error")
        self.assertIn("timed out after 2.5 seconds", result.warnings[0])

    def test_transport_error_is_reported_as_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = _complete(handler)

        self.assertEqual(result.status, "error")
        self.assertIn("before receiving a response", result.warnings[0])

    def test_non_json_envelope_is_reported_as_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        result = _complete(handler)

        self.assertEqual(result.status, "error")
        self.assertIn("not valid JSON", result.warnings[0])

    def test_envelope_with_nan_is_reported_as_error(self):
        def handler(request):
            return httpx.Response(
                200,
                content=b'{"choices": [{"message": {"content": "{}"}}], "score": NaN}',
                headers={"Content-Type": "application/json"},
            )

        result = _complete(handler)

        self.assertEqual(result.status, "error")
        self.assertIn("not valid JSON", result.warnings[0])

    def test_envelope_without_content_is_reported_as_error(self):
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        result = _complete(handler)

        self.assertEqual(result.status, "error")
        self.assertIn("did not contain message content", result.warnings[0])


if __name__ == "__main__":
    unittest.main()
