import os
from typing import Any, Dict, Type

from dotenv import load_dotenv
from openai import APIConnectionError, APITimeoutError, OpenAI
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

transport_retry = retry(
    retry=retry_if_exception_type((APIConnectionError, APITimeoutError)),
    wait=wait_fixed(2),
    stop=stop_after_attempt(3),
    reraise=True,
)


def sampling_kwargs(top_p: float | None, top_k: int | None) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    if top_p is not None:
        kwargs["top_p"] = top_p
    if top_k is not None:
        kwargs["extra_body"] = {"top_k": top_k}
    return kwargs


class ChatGPTWrapper:
    def __init__(
        self,
        model_name: str,
        api_key: str | None = None,
        timeout: float = 120.0,
        dotenv_path: str = ".env",
    ):
        load_dotenv(dotenv_path)
        self.model_name = model_name
        self.client = OpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"), timeout=timeout)

    @transport_retry
    def ask_text(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
        top_p: float | None = None,
        top_k: int | None = None,
    ) -> str:
        completion = self.client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            stream=False,
            **sampling_kwargs(top_p, top_k),
        )

        message = completion.choices[0].message
        if getattr(message, "refusal", None):
            raise RuntimeError(f"Model refusal: {message.refusal}")
        content = message.content
        if not content:
            raise RuntimeError("Model returned an empty response.")
        return content

    @transport_retry
    def ask_structured_text(
        self,
        system_prompt: str,
        user_prompt: str,
        response_model: Type[BaseModel],
        temperature: float = 0.0,
        top_p: float | None = None,
        top_k: int | None = None,
    ) -> str:
        """Constrain the reply to ``response_model`` and return its raw JSON text.

        The text is returned instead of ``message.parsed`` so callers can keep
        validating items one at a time.
        """
        completion = self.client.beta.chat.completions.parse(
            model=self.model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format=response_model,
            temperature=temperature,
            **sampling_kwargs(top_p, top_k),
        )

        message = completion.choices[0].message
        if getattr(message, "refusal", None):
            raise RuntimeError(f"Model refusal: {message.refusal}")
        content = message.content
        if not content:
            raise RuntimeError("Model returned an empty response.")
        return content
