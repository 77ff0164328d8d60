"""
Chat completion agent: answers the newest prompt of a chat with Gemini and
stores the reply as an assistant message.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

import google.generativeai as genai
from langgraph.graph import StateGraph, END
from starlette.concurrency import iterate_in_threadpool, run_in_threadpool

from config.settings import Settings
from models.chat import Message
from models.settings import PromptSettings
from services.session_store import SessionStore

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "The assistant is not configured yet. Set GEMINI_API_KEY to get real answers."
)
ERROR_REPLY = "I apologize, but I couldn't answer that. Please try again."

# ============================================================================
# DATA MODELS
# ============================================================================

@dataclass
class AgentState:
    """Agent state for the LangGraph workflow"""
    prompt: str
    chat_id: str
    user_email: str
    model: str
    settings: PromptSettings
    history: List[Message] = field(default_factory=list)
    response: str = ""
    message_id: Optional[str] = None
    error: Optional[str] = None

# ============================================================================
# LLM SERVICE
# ============================================================================

class LLMService:
    """Gemini-based LLM service"""

    def __init__(self, api_key: Optional[str] = None):
        self.configured = False
        api_key = api_key if api_key is not None else Settings.GEMINI_API_KEY
        if not api_key:
            logger.warning("GEMINI_API_KEY not set, using fallback replies")
            return
        try:
            genai.configure(api_key=api_key)
            self.configured = True
            logger.info("Gemini client configured")
        except Exception as e:
            logger.error(f"Gemini initialization failed: {e}")

    @staticmethod
    def generation_config(settings: PromptSettings) -> Dict[str, Any]:
        return {
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "frequency_penalty": settings.frequency_penalty,
            "presence_penalty": settings.presence_penalty,
            "max_output_tokens": settings.max_tokens,
        }

    @staticmethod
    def build_contents(prompt: str, history: List[Message]) -> List[Dict[str, Any]]:
        """Gemini chat contents; the prompt is usually already the last stored message."""
        contents = [
            {"role": "user" if m.role == "user" else "model", "parts": [m.content]}
            for m in history
        ]
        if not history or history[-1].role != "user" or history[-1].content != prompt:
            contents.append({"role": "user", "parts": [prompt]})
        return contents

    def generate_reply(self, prompt: str, history: List[Message], settings: PromptSettings,
                       model: str) -> str:
        if not self.configured:
            return FALLBACK_REPLY

        response = genai.GenerativeModel(model).generate_content(
            self.build_contents(prompt, history),
            generation_config=self.generation_config(settings),
        )
        return response.text.strip()

    def stream_reply(self, prompt: str, history: List[Message], settings: PromptSettings,
                     model: str) -> Iterator[str]:
        if not self.configured:
            yield FALLBACK_REPLY
            return

        response = genai.GenerativeModel(model).generate_content(
            self.build_contents(prompt, history),
            generation_config=self.generation_config(settings),
            stream=True,
        )
        for chunk in response:
            if chunk.text:
                yield chunk.text

# ============================================================================
# CHAT AGENT
# ============================================================================

class ChatAgent:
    """Completion workflow using LangGraph"""

    def __init__(self, store: SessionStore, llm_service: Optional[LLMService] = None,
                 history_limit: Optional[int] = None):
        self.store = store
        self.llm_service = llm_service or LLMService()
        self.history_limit = history_limit or Settings.HISTORY_LIMIT
        self.graph = self._build_graph()

    def _build_graph(self):
        """Build LangGraph workflow"""
        workflow = StateGraph(AgentState)

        # Add nodes
        workflow.add_node("load_history", self._load_history)
        workflow.add_node("generate_reply", self._generate_reply)
        workflow.add_node("save_reply", self._save_reply)
        workflow.add_node("handle_error", self._handle_error)

        # Define workflow
        workflow.set_entry_point("load_history")
        workflow.add_edge("load_history", "generate_reply")
        workflow.add_conditional_edges(
            "generate_reply",
            self._route_reply,
            {
                "ok": "save_reply",
                "error": "handle_error",
            }
        )
        workflow.add_edge("handle_error", "save_reply")
        workflow.add_edge("save_reply", END)

        return workflow.compile()

    def initial_state(self, prompt: str, chat_id: str, user_email: str, model: Optional[str],
                      settings: PromptSettings) -> AgentState:
        return AgentState(
            prompt=prompt,
            chat_id=chat_id,
            user_email=user_email,
            model=model or Settings.DEFAULT_MODEL,
            settings=settings,
        )

    async def process_query(self, prompt: str, chat_id: str, user_email: str,
                            model: Optional[str] = None,
                            settings: Optional[PromptSettings] = None) -> Dict[str, Any]:
        """Answer ``prompt`` in ``chat_id`` and store the reply"""
        initial_state = self.initial_state(prompt, chat_id, user_email, model, settings or PromptSettings())
        final_state = await self.graph.ainvoke(initial_state)

        # The compiled workflow may return either an AgentState instance
        # or a plain dict depending on the langgraph version.
        if isinstance(final_state, dict):
            response = final_state.get("response", "")
            message_id = final_state.get("message_id")
            error = final_state.get("error")
        else:
            response = getattr(final_state, "response", "")
            message_id = getattr(final_state, "message_id", None)
            error = getattr(final_state, "error", None)

        return {
            "answer": response,
            "chatId": chat_id,
            "messageId": message_id,
            "error": error,
        }

    async def stream_query(self, prompt: str, chat_id: str, user_email: str,
                           model: Optional[str] = None,
                           settings: Optional[PromptSettings] = None) -> AsyncIterator[str]:
        """Yield reply chunks as they arrive; the whole reply is stored once it is complete."""
        state = self.initial_state(prompt, chat_id, user_email, model, settings or PromptSettings())
        state.history = (await run_in_threadpool(self._load_history, state))["history"]

        parts: List[str] = []
        try:
            chunks = self.llm_service.stream_reply(state.prompt, state.history, state.settings, state.model)
            async for chunk in iterate_in_threadpool(chunks):
                parts.append(chunk)
                yield chunk
        finally:
            # partial output of a stopped stream is kept
            state.response = "".join(parts)
            if state.response:
                await run_in_threadpool(self._save_reply, state)

    # ------------------------------------------------------------------
    # nodes
    # ------------------------------------------------------------------

    def _load_history(self, state: AgentState) -> Dict[str, Any]:
        """Load the newest messages of the chat"""
        try:
            history = self.store.list_messages(state.user_email, state.chat_id, limit=self.history_limit)
        except Exception as e:
            logger.error(f"Error loading history of chat {state.chat_id}: {e}")
            history = []
        return {"history": history}

    def _generate_reply(self, state: AgentState) -> Dict[str, Any]:
        """Ask the model for a reply"""
        try:
            response = self.llm_service.generate_reply(state.prompt, state.history, state.settings, state.model)
            logger.info(f"Reply generated for chat {state.chat_id} ({len(response)} chars)")
            return {"response": response}
        except Exception as e:
            logger.error(f"Error generating reply: {e}")
            return {"error": str(e)}

    def _save_reply(self, state: AgentState) -> Dict[str, Any]:
        """Store the reply as an assistant message"""
        message = Message(id=str(uuid.uuid4()), content=state.response, role="assistant", chat_id=state.chat_id)
        try:
            self.store.add_message(state.user_email, state.chat_id, message)
            return {"message_id": message.id}
        except Exception as e:
            logger.error(f"Error saving reply to chat {state.chat_id}: {e}")
            return {"error": state.error or str(e)}

    def _handle_error(self, state: AgentState) -> Dict[str, Any]:
        """Handle errors"""
        return {"response": state.response or ERROR_REPLY}

    def _route_reply(self, state: AgentState) -> str:
        """Route based on the outcome of generation"""
        error = state.get("error") if isinstance(state, dict) else state.error
        return "error" if error else "ok"
