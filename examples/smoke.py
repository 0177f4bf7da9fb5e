import asyncio
import logging

from chat_bridge.client import ChatClient
from chat_bridge.config import BridgeSettings
from chat_bridge.context import create_context
from chat_bridge.types import ChatMessage, ChatOptions, DiagnosticEvent, ToolDescriptor


def report(event: DiagnosticEvent) -> None:
    print("Diagnostic:", event.kind, event.message)


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    client = ChatClient(create_context(BridgeSettings.from_env()), on_diagnostic=report)

    messages = [ChatMessage(role="user", text="What is the weather in Oslo?")]
    options = ChatOptions(
        tool_mode="auto",
        tools=[
            ToolDescriptor(
                name="get_weather",
                description="Current weather for a city",
                json_schema={
                    "type": "object",
                    "properties": {"city": {"type": "string", "description": "City name"}},
                    "required": ["city"],
                },
            )
        ],
    )

    try:
        response = await client.get_response(messages)
        print("Standard:", response.text)

        async for update in client.get_streaming_response(messages, options):
            print(update.text, end="", flush=True)
        print()
    except Exception as e:
        print("Error:", type(e).__name__, e)
    finally:
        await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
