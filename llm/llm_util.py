from typing import Iterator, Optional

from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.prompts import PromptTemplate
from util.secrets import get_gemini_api_key
from util.logging_util import setup_logger, log_llm_interaction
import time

logger = setup_logger(__name__)

DEFAULT_MODEL_NAME = "gemini-3-flash-preview"


def _build_chain(template_path: str, model_name: str, timeout: Optional[float], temperature: float):
    llm = ChatGoogleGenerativeAI(
        model=model_name,
        google_api_key=get_gemini_api_key(),
        temperature=temperature,
        timeout=timeout,
        max_retries=0,
    )

    with open(template_path, "r") as f:
        template_content = f.read()

    # Create a prompt template that treats the input as a Jinja2 template
    prompt = PromptTemplate.from_template(template_content, template_format="jinja2")
    return prompt | llm


def _content_to_text(response_content) -> str:
    # Gemini returns content as a list of parts, extract the text
    if isinstance(response_content, list):
        text_parts = [part.get('text', '') for part in response_content if isinstance(part, dict) and 'text' in part]
        return ''.join(text_parts)
    return response_content or ""


def get_llm_response(
    template_path: str,
    params: dict,
    model_name: str = DEFAULT_MODEL_NAME,
    timeout: Optional[float] = None,
    temperature: float = 0.0,
) -> str:
    """
    Generates a response from the LLM based on a Jinja2 template file and parameters.

    Args:
        template_path: The absolute path to the Jinja2 template file.
        params: A dictionary of parameters to populate the template.
        model_name: The name of the Gemini model to use.
        timeout: Request timeout in seconds. None means the client default.
        temperature: Sampling temperature.

    Returns:
        The string response from the LLM.
    """
    start_time = time.time()

    chain = _build_chain(template_path, model_name, timeout, temperature)
    response = chain.invoke(params)

    # LangChain Chat models return an AIMessage, we want the content string
    response_content = _content_to_text(response.content)

    duration_ms = (time.time() - start_time) * 1000
    log_llm_interaction(logger, template_path, params, response_content, model_name, duration_ms)

    return response_content


def stream_llm_response(
    template_path: str,
    params: dict,
    model_name: str = DEFAULT_MODEL_NAME,
    timeout: Optional[float] = None,
    temperature: float = 0.2,
) -> Iterator[str]:
    """
    Streams a response from the LLM as text increments.

    Same arguments as get_llm_response. Empty increments are skipped.
    """
    start_time = time.time()

    chain = _build_chain(template_path, model_name, timeout, temperature)
    collected = []
    for message_chunk in chain.stream(params):
        text = _content_to_text(message_chunk.content)
        if text:
            collected.append(text)
            yield text

    duration_ms = (time.time() - start_time) * 1000
    log_llm_interaction(logger, template_path, params, ''.join(collected), model_name, duration_ms)
