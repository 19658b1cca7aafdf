"""
Chat-completions client for the family assistant.

Talks to any OpenAI-compatible /chat/completions endpoint. When no API key is
configured or the call fails, callers fall back to placeholder_response().
"""

import logging
import math
import random
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from tribe.config import settings

logger = logging.getLogger(__name__)

TITLE_WORDS = 8
DAYS_PER_YEAR = 365.25
NO_CHILDREN_CONTEXT = "No children information provided"
EMPTY_COMPLETION = "I apologize, but I encountered an error generating a response. Please try again."

SYSTEM_PROMPT = """You are a helpful family assistant for the {tree_name} family. You provide supportive, evidence-based parenting advice and information.

Family context:
- Children: {children}

Guidelines:
- Provide warm, supportive responses
- Offer practical, actionable advice
- Reference child development milestones when relevant
- Suggest age-appropriate activities
- Always encourage consulting healthcare providers for medical concerns
- Keep responses conversational and encouraging
- Focus on positive parenting approaches

Remember: You're here to support parents with information and suggestions, not replace professional medical or psychological advice."""

PLACEHOLDER_RESPONSES = [
    """Thank you for your question about parenting! {children_info}

While I don't have AI capabilities configured right now, here are some general suggestions:

- Consider your child's developmental stage and individual needs
- Look for age-appropriate activities that match their interests
- Maintain consistent routines, especially for sleep and meals
- Remember that every child develops at their own pace

For specific concerns, always consult with your pediatrician or child development specialist.

Would you like to share more details about what you're experiencing?""",
    """I appreciate you reaching out! {children_info}

Here are some helpful parenting resources while the AI assistant is being configured:

- Zero to Three (zerotothree.org) for early childhood development
- American Academy of Pediatrics (healthychildren.org) for health guidance
- Your local pediatrician for personalized advice
- Parent groups in your community for peer support

Feel free to continue the conversation - I'm here to help organize your thoughts and questions!""",
    """Thanks for your question! {children_info}

Some general parenting principles that might help:

- Follow your child's lead and interests
- Create predictable routines that feel safe
- Use positive reinforcement more than corrections
- Take care of yourself so you can take care of them
- Trust your instincts as a parent

What specific area would you like to explore further? I'm here to help you think through your parenting journey.""",
]


def generate_thread_title(message: str) -> str:
    """First eight words of the opening message, with '...' when cut short."""
    title = " ".join(message.split(" ")[:TITLE_WORDS])
    return title + "..." if len(title) < len(message) else title


def child_age_years(dob: Any, today: Optional[date] = None) -> Optional[int]:
    """Whole years since dob; None when dob is missing or unparseable."""
    if not dob:
        return None
    try:
        born = dob if isinstance(dob, date) else date.fromisoformat(str(dob)[:10])
    except ValueError:
        logger.warning(f"Ignoring unparseable date of birth: {dob!r}")
        return None
    if isinstance(born, datetime):
        born = born.date()
    today = today or datetime.now(timezone.utc).date()
    return math.floor((today - born).days / DAYS_PER_YEAR)


def describe_children(children: Sequence[Dict[str, Any]], today: Optional[date] = None) -> str:
    if not children:
        return NO_CHILDREN_CONTEXT
    described = []
    for child in children:
        age = child_age_years(child.get("dob"), today)
        described.append(child["name"] if age is None else f"{child['name']} ({age} years old)")
    return ", ".join(described)


def build_system_prompt(tree_name: str, children: Sequence[Dict[str, Any]], today: Optional[date] = None) -> str:
    return SYSTEM_PROMPT.format(tree_name=tree_name, children=describe_children(children, today))


def build_chat_messages(
    system_prompt: str, history: Sequence[Dict[str, Any]], user_message: str
) -> List[Dict[str, str]]:
    """System prompt, prior turns mapped to user/assistant roles, then the new message."""
    messages = [{"role": "system", "content": system_prompt}]
    for turn in history:
        messages.append({
            "role": "user" if turn["author"] == "parent" else "assistant",
            "content": turn["content"],
        })
    messages.append({"role": "user", "content": user_message})
    return messages


def placeholder_response(
    children: Sequence[Dict[str, Any]], choose: Callable[[Sequence[str]], str] = random.choice
) -> str:
    """Canned guidance used when no model is available."""
    children_info = ""
    if children:
        plural = "ren" if len(children) > 1 else ""
        names = ", ".join(child["name"] for child in children)
        children_info = f"I see you have {len(children)} child{plural}: {names}."
    return choose(PLACEHOLDER_RESPONSES).format(children_info=children_info)


class AssistantLLM:
    """Synchronous chat-completions client.

    Args:
        api_key: Bearer token; defaults to settings.resolved_llm_api_key.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.resolved_llm_api_key
        self.api_url = api_url or settings.llm_api_url
        self.model = model or settings.llm_model
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def complete(self, messages: List[Dict[str, str]]) -> str:
        """POST the conversation and return the first choice's content.

        Raises:
            httpx.HTTPError: on transport failures or non-2xx responses.
        """
        with httpx.Client(transport=self._transport, timeout=settings.llm_timeout_sec) as client:
            response = client.post(
                self.api_url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json={
                    "model": self.model,
                    "messages": messages,
                    "max_tokens": settings.llm_max_tokens,
                    "temperature": settings.llm_temperature,
                },
            )
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise ValueError(f"Unexpected completion payload: {type(data).__name__}")
        choices = data.get("choices") or []
        first = choices[0] if isinstance(choices, list) and choices else {}
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return content or EMPTY_COMPLETION

    def generate_reply(
        self,
        user_message: str,
        history: Sequence[Dict[str, Any]],
        children: Sequence[Dict[str, Any]],
        tree_name: str,
    ) -> str:
        """Model reply, or a placeholder when unconfigured or the call fails."""
        if not self.configured:
            return placeholder_response(children)
        messages = build_chat_messages(build_system_prompt(tree_name, children), history, user_message)
        try:
            return self.complete(messages)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error generating AI response: {e}")
            return placeholder_response(children)


def get_assistant_llm() -> AssistantLLM:
    return AssistantLLM()
