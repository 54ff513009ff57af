import asyncio
import unittest
from collections.abc import Sequence
from unittest.mock import AsyncMock

import httpx
from openai import AuthenticationError, RateLimitError

from techchat.errors import BadRequestError, EmptyResponseError, ProviderFailedError, ProviderHTTPError
from techchat.orchestration.direct import DirectChatOrchestrator
from techchat.provider_registry import ProviderDisabledState
from techchat.schemas import ChatRequest, ChatTurn
from techchat.services.chat_service import ChatService, classify_provider_error


def _openai_error(error_class: type, status_code: int, message: str) -> Exception:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return error_class(message, response=response, body=None)


class StubProvider:
    name = "gemini"
    model = "gemini-2.0-flash"

    def __init__(self, reply: str = "real reply") -> None:
        self.generate = AsyncMock(return_value=reply)


class ClassifyProviderErrorTests(unittest.TestCase):
    def test_status_codes_mark_credential_rejection(self) -> None:
        self.assertEqual(
            classify_provider_error(ProviderHTTPError(401, "unauthenticated")),
            "credential_rejected",
        )
        self.assertEqual(
            classify_provider_error(ProviderHTTPError(403, "denied")), "credential_rejected"
        )

    def test_openai_sdk_errors_are_classified(self) -> None:
        self.assertEqual(
            classify_provider_error(
                _openai_error(AuthenticationError, 401, "Incorrect API key provided")
            ),
            "credential_rejected",
        )
        self.assertEqual(
            classify_provider_error(
                _openai_error(RateLimitError, 429, "You exceeded your current quota")
            ),
            "quota_exceeded",
        )

    def test_message_markers(self) -> None:
        cases = {
            "Forbidden": "credential_rejected",
            "Invalid API key supplied": "credential_rejected",
            "Your API key was reported as leaked": "credential_rejected",
            "INVALID_ARGUMENT API key not valid. Please pass a valid API key.": "credential_rejected",
            "RESOURCE_EXHAUSTED": "quota_exceeded",
            "Quota exceeded for metric": "quota_exceeded",
            "connection reset by peer": "other",
        }
        for message, expected in cases.items():
            with self.subTest(message=message):
                self.assertEqual(classify_provider_error(RuntimeError(message)), expected)

    def test_rate_limit_without_quota_is_other(self) -> None:
        self.assertEqual(classify_provider_error(ProviderHTTPError(429, "slow down")), "other")


class ChatServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.provider = StubProvider()
        self.state = ProviderDisabledState()

    def _service(self, **overrides) -> ChatService:
        options = {
            "provider_name": "gemini",
            "provider": self.provider,
            "orchestrator": DirectChatOrchestrator(),
            "disabled_state": self.state,
        }
        options.update(overrides)
        return ChatService(**options)

    async def test_success_returns_reply_and_usage(self) -> None:
        service = self._service()
        request = ChatRequest(
            message="  explain generators\x00 ",
            history=[
                {"role": "user", "text": "hi"},
                {"role": "model", "text": "hello"},
                {"role": "user", "text": "   "},
            ],
        )

        response = await service.handle_chat(request)

        self.assertTrue(response.success)
        self.assertEqual(response.reply, "real reply")
        self.assertIsNone(response.fallback)
        self.assertEqual(response.provider, "gemini")
        self.assertEqual(response.model, "gemini-2.0-flash")
        assert response.usage is not None
        self.assertEqual(response.usage.history_items_used, 2)
        self.assertEqual(response.usage.input_chars, len("explain generators"))
        self.assertEqual(response.usage.output_chars, len("real reply"))
        self.assertGreaterEqual(response.latency_ms, 0)

        system_instruction, history, message = self.provider.generate.await_args.args
        self.assertIn("TechChat", system_instruction)
        self.assertEqual(
            history, [ChatTurn(role="user", text="hi"), ChatTurn(role="model", text="hello")]
        )
        self.assertEqual(message, "explain generators")

    async def test_no_provider_configured_returns_missing_key_fallback(self) -> None:
        service = self._service(provider_name="none", provider=None)

        response = await service.handle_chat(ChatRequest(message="hello"))

        self.assertTrue(response.success)
        self.assertTrue(response.fallback)
        self.assertEqual(response.fallback_reason, "missing_key")
        self.assertTrue(response.reply)

    async def test_unavailable_provider_skips_validation(self) -> None:
        service = self._service(provider_name="none", provider=None)

        response = await service.handle_chat(ChatRequest(message=""))

        self.assertTrue(response.success)
        self.assertEqual(response.fallback_reason, "missing_key")

    async def test_unconfigured_resolved_provider_is_unavailable(self) -> None:
        service = self._service(provider_configured=False)

        response = await service.handle_chat(ChatRequest(message="hello"))

        self.assertEqual(response.fallback_reason, "provider_unavailable")
        self.provider.generate.assert_not_awaited()

    async def test_resolved_provider_without_adapter_falls_back(self) -> None:
        service = self._service(provider=None)

        response = await service.handle_chat(ChatRequest(message="hello"))

        self.assertTrue(response.success)
        self.assertEqual(response.fallback_reason, "provider_unavailable")

    async def test_empty_message_is_rejected(self) -> None:
        service = self._service()

        for message in ("", None, " \x00\n "):
            with self.subTest(message=message):
                with self.assertRaises(BadRequestError) as ctx:
                    await service.handle_chat(ChatRequest(message=message))
                self.assertEqual(ctx.exception.status_code, 400)
                self.assertEqual(ctx.exception.message, "Message is required.")
        self.provider.generate.assert_not_awaited()

    async def test_oversized_message_is_rejected(self) -> None:
        service = self._service()

        with self.assertRaises(BadRequestError) as ctx:
            await service.handle_chat(ChatRequest(message="x" * 3001))

        self.assertEqual(ctx.exception.message, "Message too long. Max 3000.")
        self.provider.generate.assert_not_awaited()

    async def test_message_at_limit_is_accepted(self) -> None:
        response = await self._service().handle_chat(ChatRequest(message="x" * 3000))

        self.assertTrue(response.success)

    async def test_credential_rejection_disables_provider_permanently(self) -> None:
        self.provider.generate.side_effect = ProviderHTTPError(401, "unauthenticated")
        service = self._service()

        first = await service.handle_chat(ChatRequest(message="hello"))
        second = await service.handle_chat(ChatRequest(message="hello again"))

        self.assertTrue(first.success)
        self.assertTrue(first.fallback)
        self.assertEqual(first.fallback_reason, "invalid_key")
        self.assertTrue(self.state.is_disabled("gemini"))
        self.assertTrue(second.fallback)
        self.assertEqual(second.fallback_reason, "provider_unavailable")
        self.assertEqual(self.provider.generate.await_count, 1)

    async def test_quota_exceeded_falls_back_without_disabling(self) -> None:
        self.provider.generate.side_effect = RuntimeError("You exceeded your current quota")
        service = self._service()

        first = await service.handle_chat(ChatRequest(message="hello"))
        second = await service.handle_chat(ChatRequest(message="hello"))

        self.assertEqual(first.fallback_reason, "quota_exceeded")
        self.assertEqual(second.fallback_reason, "quota_exceeded")
        self.assertEqual(len(first.reply.split("\n")), 3)
        self.assertFalse(self.state.is_disabled("gemini"))
        self.assertEqual(self.provider.generate.await_count, 2)

    async def test_empty_response_is_a_failure_not_a_fallback(self) -> None:
        self.provider.generate.side_effect = EmptyResponseError("empty_response")
        service = self._service()

        with self.assertRaises(ProviderFailedError) as ctx:
            await service.handle_chat(ChatRequest(message="hello"))

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIn("empty response", ctx.exception.message)
        self.assertIn("try again", ctx.exception.message)
        self.assertFalse(self.state.is_disabled("gemini"))

    async def test_other_failure_hides_details_in_production(self) -> None:
        self.provider.generate.side_effect = RuntimeError("socket closed")
        service = self._service()

        with self.assertRaises(ProviderFailedError) as ctx:
            await service.handle_chat(ChatRequest(message="hello"))

        self.assertEqual(ctx.exception.message, "Failed to process your message.")
        self.assertIsNone(ctx.exception.details)

    async def test_other_failure_exposes_details_in_development(self) -> None:
        self.provider.generate.side_effect = RuntimeError("socket closed")
        service = self._service(expose_error_details=True)

        with self.assertRaises(ProviderFailedError) as ctx:
            await service.handle_chat(ChatRequest(message="hello"))

        self.assertEqual(ctx.exception.details, "socket closed")

    async def test_timeout_is_treated_as_other_failure(self) -> None:
        async def slow_generate(*args) -> str:
            await asyncio.sleep(1)
            return "too late"

        self.provider.generate.side_effect = slow_generate
        service = self._service(timeout_seconds=0.01, expose_error_details=True)

        with self.assertRaises(ProviderFailedError) as ctx:
            await service.handle_chat(ChatRequest(message="hello"))

        self.assertEqual(ctx.exception.message, "Failed to process your message.")
        self.assertIn("timed out", ctx.exception.details or "")
        self.assertFalse(self.state.is_disabled("gemini"))

    async def test_disabled_state_is_shared_between_services(self) -> None:
        self.state.disable("gemini")

        response = await self._service().handle_chat(ChatRequest(message="hello"))

        self.assertEqual(response.fallback_reason, "provider_unavailable")
        self.provider.generate.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
