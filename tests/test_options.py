import random
import unittest

from chat_bridge.options import narrow_seed, requires_advanced_path, translate_options
from chat_bridge.types import ChatOptions, ToolDescriptor


def _random_plain_options(rng: random.Random) -> ChatOptions:
    def maybe(value):
        return value if rng.random() < 0.5 else None

    return ChatOptions(
        temperature=maybe(rng.uniform(0, 2)),
        top_p=maybe(rng.random()),
        top_k=maybe(rng.randint(1, 100)),
        frequency_penalty=maybe(rng.uniform(-2, 2)),
        presence_penalty=maybe(rng.uniform(-2, 2)),
        max_output_tokens=maybe(rng.randint(1, 4096)),
        seed=maybe(rng.randint(-(2**63), 2**63 - 1)),
        model_id=maybe("other-model"),
    )


class TranslateOptionsTests(unittest.TestCase):
    def test_none_options_use_backend_defaults(self) -> None:
        settings, advanced = translate_options(None)
        self.assertEqual(settings.as_payload(), {})
        self.assertFalse(advanced)

    def test_present_fields_copied_verbatim(self) -> None:
        options = ChatOptions(
            temperature=0.3,
            top_p=0.9,
            top_k=40,
            frequency_penalty=0.1,
            presence_penalty=-0.2,
            max_output_tokens=128,
            seed=7,
        )
        settings, advanced = translate_options(options)
        self.assertEqual(
            settings.as_payload(),
            {
                "temperature": 0.3,
                "top_p": 0.9,
                "top_k": 40,
                "frequency_penalty": 0.1,
                "presence_penalty": -0.2,
                "max_tokens": 128,
                "seed": 7,
            },
        )
        self.assertFalse(advanced)

    def test_options_without_tool_fields_never_require_advanced_path(self) -> None:
        rng = random.Random(1234)
        for _ in range(500):
            _, advanced = translate_options(_random_plain_options(rng))
            self.assertFalse(advanced)

    def test_each_tool_field_requires_advanced_path(self) -> None:
        tool = ToolDescriptor(name="lookup")
        for options in (
            ChatOptions(tool_mode="none"),
            ChatOptions(tool_mode="auto"),
            ChatOptions(tool_mode="required"),
            ChatOptions(allow_multiple_tool_calls=False),
            ChatOptions(tools=[tool]),
        ):
            self.assertTrue(requires_advanced_path(options), options)
            self.assertTrue(translate_options(options)[1])

    def test_empty_tool_list_does_not_require_advanced_path(self) -> None:
        self.assertFalse(requires_advanced_path(ChatOptions(tools=[])))


class NarrowSeedTests(unittest.TestCase):
    def test_in_range_seed_kept(self) -> None:
        self.assertEqual(narrow_seed(2**31 - 1), 2**31 - 1)
        self.assertEqual(narrow_seed(-(2**31)), -(2**31))

    def test_out_of_range_seed_dropped(self) -> None:
        self.assertIsNone(narrow_seed(2**31))
        self.assertIsNone(narrow_seed(-(2**31) - 1))
        settings, _ = translate_options(ChatOptions(seed=2**40, temperature=0.5))
        self.assertEqual(settings.as_payload(), {"temperature": 0.5})

    def test_none_seed(self) -> None:
        self.assertIsNone(narrow_seed(None))


if __name__ == "__main__":
    unittest.main()
