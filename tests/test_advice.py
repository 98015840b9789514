import unittest

from market_bot.errors import AdviceUnavailableError
from market_bot.schemas.market import AltAssetRecord, MainAssetRecord, MarketSnapshot
from market_bot.services.advice import (
    AdviceGenerator,
    build_prompt,
    build_rule_based_advice,
    classify_action,
    classify_dominance,
    classify_trend,
)


def _snapshot(btc_change=1.0, dominance=50.0, alts=None, main_assets=None):
    return MarketSnapshot(
        as_of=1,
        source="coingecko",
        main_assets=main_assets
        if main_assets is not None
        else {"bitcoin": MainAssetRecord(price=50000.0, change_24h_pct=btc_change)},
        main_symbols={"bitcoin": "BTC"},
        alt_assets=alts or {},
        dominance_pct=dominance,
    )


class FakeProvider:
    def __init__(self, name, *, available=True, text="AI says hold", error=None):
        self.name = name
        self.label = name.upper()
        self.available = available
        self.text = text
        self.error = error
        self.prompts = []

    def is_available(self):
        return self.available

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


class TestClassifiers(unittest.TestCase):
    def test_trend_boundaries(self):
        self.assertIn("strong uptrend", classify_trend(2.0))
        self.assertIn("slight upward", classify_trend(1.99))
        self.assertIn("slight upward", classify_trend(0.0))
        self.assertIn("slight pullback", classify_trend(-1.99))
        self.assertIn("strong downtrend", classify_trend(-2.0))
        self.assertIn("unavailable", classify_trend(None))

    def test_action_boundaries(self):
        self.assertIn("taking partial profit", classify_action(5.0))
        self.assertIn("hold", classify_action(4.99))
        self.assertIn("buy-the-dip", classify_action(-5.0))
        self.assertIn("hold", classify_action(-4.99))
        self.assertIn("hold", classify_action(None))

    def test_dominance_bands(self):
        self.assertIn("High", classify_dominance(55.01))
        self.assertIn("Moderate", classify_dominance(55.0))
        self.assertIn("Moderate", classify_dominance(50.01))
        self.assertIn("Low", classify_dominance(50.0))


class TestRuleBasedAdvice(unittest.TestCase):
    def test_summary_without_gainers_has_no_gainers_section(self):
        text = build_rule_based_advice(_snapshot(btc_change=-5.0, dominance=56.0))

        self.assertIn("strong downtrend", text)
        self.assertIn("buy-the-dip", text)
        self.assertIn("High BTC dominance", text)
        self.assertNotIn("Top Gainers", text)
        self.assertTrue(text.endswith("⚠️ AI analysis unavailable. Monitor price movements manually."))

    def test_missing_bitcoin_still_produces_summary(self):
        text = build_rule_based_advice(_snapshot(main_assets={}))
        self.assertIn("trend unavailable", text)
        self.assertIn("hold", text)

    def test_gainers_listed_best_first(self):
        alts = {
            "AAA": AltAssetRecord(price=1.5, change_24h_pct=3.0, volume_24h_quote=2e6),
            "BBB": AltAssetRecord(price=2.0, change_24h_pct=9.0, volume_24h_quote=3e9),
        }
        text = build_rule_based_advice(_snapshot(alts=alts), gainers_limit=5)

        self.assertIn("🚀 *Top Gainers:*", text)
        self.assertLess(text.index("BBB"), text.index("AAA"))
        self.assertIn("BBB: $2.00 (+9.00%) (Vol: $3.00B)", text)


class TestPrompt(unittest.TestCase):
    def test_prompt_mentions_prices_dominance_and_gainers(self):
        alts = {"SOL": AltAssetRecord(price=150.0, change_24h_pct=6.5, volume_24h_quote=4e9)}
        prompt = build_prompt(_snapshot(btc_change=1.5, dominance=54.0, alts=alts))

        self.assertIn("BTC: $50,000.00 (+1.50% 24h)", prompt)
        self.assertIn("BTC Dominance: 54.00%", prompt)
        self.assertIn("- SOL: +6.50%", prompt)


class TestAdviceGenerator(unittest.TestCase):
    def test_first_available_provider_wins(self):
        first = FakeProvider("openai", available=False)
        second = FakeProvider("gemini", text="Gemini says buy")
        third = FakeProvider("deepseek")
        generator = AdviceGenerator(providers=[first, second, third])

        text = generator.get_advice(_snapshot())

        self.assertEqual(text, "🤖 AI Analysis (GEMINI):\nGemini says buy")
        self.assertEqual(first.prompts, [])
        self.assertEqual(third.prompts, [])
        self.assertEqual(generator.last_provider, "gemini")

    def test_generation_error_moves_to_next_provider(self):
        first = FakeProvider("openai", error=AdviceUnavailableError("empty"))
        second = FakeProvider("deepseek", text="DeepSeek view")
        generator = AdviceGenerator(providers=[first, second])

        self.assertIn("DeepSeek view", generator.get_advice(_snapshot()))

    def test_all_providers_failing_falls_back_to_rules(self):
        generator = AdviceGenerator(
            providers=[FakeProvider("openai", error=RuntimeError("quota")), FakeProvider("gemini", text="")]
        )

        text = generator.get_advice(_snapshot())

        self.assertIn("📊 *Market Summary:*", text)
        self.assertIsNone(generator.last_provider)

    def test_no_providers_configured_uses_rules(self):
        self.assertIn("AI analysis unavailable", AdviceGenerator().get_advice(_snapshot()))

    def test_provider_status_survives_probe_errors(self):
        class Broken(FakeProvider):
            def is_available(self):
                raise RuntimeError("boom")

        generator = AdviceGenerator(providers=[FakeProvider("openai"), Broken("gemini")])
        self.assertEqual(generator.provider_status(), {"openai": True, "gemini": False})


if __name__ == "__main__":
    unittest.main()
