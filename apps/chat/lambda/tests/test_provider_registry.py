import unittest

from techchat.provider_registry import ProviderDisabledState, resolve_provider


class ResolveProviderTests(unittest.TestCase):
    def test_preference_ignored_when_unavailable(self) -> None:
        self.assertEqual(resolve_provider("openai", has_gemini=True, has_openai=False), "gemini")

    def test_default_precedence_is_gemini(self) -> None:
        self.assertEqual(resolve_provider("", has_gemini=True, has_openai=True), "gemini")

    def test_available_preference_wins(self) -> None:
        self.assertEqual(resolve_provider("OpenAI", has_gemini=True, has_openai=True), "openai")

    def test_openai_when_only_openai_available(self) -> None:
        self.assertEqual(resolve_provider(None, has_gemini=False, has_openai=True), "openai")

    def test_none_when_nothing_configured(self) -> None:
        self.assertEqual(resolve_provider("gemini", has_gemini=False, has_openai=False), "none")

    def test_unknown_preference_falls_back_to_precedence(self) -> None:
        self.assertEqual(resolve_provider("claude", has_gemini=False, has_openai=True), "openai")


class ProviderDisabledStateTests(unittest.TestCase):
    def test_disable_is_one_way_and_idempotent(self) -> None:
        state = ProviderDisabledState()
        self.assertFalse(state.is_disabled("gemini"))

        state.disable("gemini")
        state.disable("gemini")

        self.assertTrue(state.is_disabled("gemini"))
        self.assertFalse(state.is_disabled("openai"))
        self.assertEqual(state.snapshot(), {"gemini": True, "openai": False})

    def test_none_is_never_disabled(self) -> None:
        state = ProviderDisabledState()
        state.disable("none")

        self.assertFalse(state.is_disabled("none"))


if __name__ == "__main__":
    unittest.main()
