"""OpenAI-compatible chat completions client (Groq)."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from insurance_bot.services.assistant import ChatClient


@dataclass
class OpenAIChatClient(ChatClient):
    """Chat client backed by an OpenAI-compatible chat completions API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "OpenAIChatClient":
        """Create a chat client for the given OpenAI-compatible endpoint."""
        return cls(client=AsyncOpenAI(api_key=api_key, base_url=base_url))

    async def complete(
        self, *, model: str, system_prompt: str, user_message: str, temperature: float
    ) -> str:
        """Call chat completions and return the first choice's content."""
        response = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            temperature=temperature,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
