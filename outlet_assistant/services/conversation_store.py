"""
CONVERSATION STORE MODULE
=========================

Auth and chat persistence on Supabase (managed auth + Postgres). The server
uses the service role key, so row-level security does not apply here: every
query below is scoped to the signed-in user's id explicitly.

TABLES:
  profiles       (id, email)
  conversations  (id, user_id, title, created_at, updated_at)
  messages       (id, conversation_id, role, content, created_at)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from config import SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL


logger = logging.getLogger("outlet_assistant")


class SignupError(ValueError):
    """Supabase refused to create the user (duplicate email, weak password, ...)."""


class ConversationNotFound(LookupError):
    pass


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_supabase_client(url: str = SUPABASE_URL, key: str = SUPABASE_SERVICE_ROLE_KEY) -> Optional[Client]:
    """Service-role client, or None when Supabase isn't configured."""
    if not url or not key:
        logger.warning("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not set. Signup and saved conversations will be unavailable.")
        return None
    return create_client(url, key)


# ==============================================================================
# CONVERSATION STORE CLASS
# ==============================================================================

class ConversationStore:
    """CRUD for users' conversations and messages, plus signup and token lookup."""

    def __init__(self, client: Client):
        self.client = client

    # ------------------------------------------------------------------------------
    # AUTH
    # ------------------------------------------------------------------------------

    def create_user(self, email: str, password: str) -> Any:
        """
        Create a confirmed user (no confirmation email) and their profile row.
        Raises SignupError with Supabase's message when the user can't be created.
        """
        try:
            response = self.client.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
            })
        except Exception as e:
            raise SignupError(str(e)) from e

        user = getattr(response, "user", None)
        if user is None:
            raise SignupError("User could not be created")

        # Signup succeeds even without a profile row.
        try:
            self.client.table("profiles").insert({"id": user.id, "email": user.email}).execute()
        except Exception as e:
            logger.warning("Profile row for user %s could not be created: %s", user.id, e)
        logger.info("Created user %s", user.id)
        return user

    def get_user(self, access_token: str) -> Any:
        """Resolve a Supabase access token to its user, or None if it is invalid or expired."""
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as e:
            logger.warning("Token verification failed: %s", e)
            return None
        return getattr(response, "user", None)

    # ------------------------------------------------------------------------------
    # CONVERSATIONS
    # ------------------------------------------------------------------------------

    def list_conversations(self, user_id: str) -> List[Dict[str, Any]]:
        """Newest activity first."""
        response = (
            self.client.table("conversations")
            .select("*")
            .eq("user_id", user_id)
            .order("updated_at", desc=True)
            .execute()
        )
        return response.data or []

    def create_conversation(self, user_id: str, title: str) -> Dict[str, Any]:
        response = (
            self.client.table("conversations")
            .insert({"user_id": user_id, "title": title})
            .execute()
        )
        return response.data[0]

    def get_conversation(self, user_id: str, conversation_id: str) -> Dict[str, Any]:
        """The conversation if it belongs to user_id; ConversationNotFound otherwise."""
        response = (
            self.client.table("conversations")
            .select("*")
            .eq("id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not response.data:
            raise ConversationNotFound(f"Conversation {conversation_id} not found")
        return response.data[0]

    def update_conversation_title(self, user_id: str, conversation_id: str, title: str) -> Dict[str, Any]:
        response = (
            self.client.table("conversations")
            .update({"title": title})
            .eq("id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not response.data:
            raise ConversationNotFound(f"Conversation {conversation_id} not found")
        return response.data[0]

    def delete_conversation(self, user_id: str, conversation_id: str) -> None:
        self.get_conversation(user_id, conversation_id)
        self.client.table("messages").delete().eq("conversation_id", conversation_id).execute()
        (
            self.client.table("conversations")
            .delete()
            .eq("id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        logger.info("Deleted conversation %s", conversation_id)

    # ------------------------------------------------------------------------------
    # MESSAGES
    # ------------------------------------------------------------------------------

    def get_messages(self, user_id: str, conversation_id: str) -> List[Dict[str, Any]]:
        """Messages of one of the user's conversations, oldest first."""
        self.get_conversation(user_id, conversation_id)
        response = (
            self.client.table("messages")
            .select("*")
            .eq("conversation_id", conversation_id)
            .order("created_at")
            .execute()
        )
        return response.data or []

    def save_message(self, user_id: str, conversation_id: str, role: str, content: str) -> Dict[str, Any]:
        """Append a message and bump the conversation's updated_at so it sorts first."""
        if role not in ("user", "assistant"):
            raise ValueError(f"Invalid message role: {role}")
        self.get_conversation(user_id, conversation_id)

        response = (
            self.client.table("messages")
            .insert({"conversation_id": conversation_id, "role": role, "content": content})
            .execute()
        )
        (
            self.client.table("conversations")
            .update({"updated_at": _utc_now()})
            .eq("id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        return response.data[0]

    def get_all_messages(self, user_id: str, conversations: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        """Every message across the user's conversations, oldest first (used by analytics)."""
        if conversations is None:
            conversations = self.list_conversations(user_id)
        conversation_ids = [conv["id"] for conv in conversations]
        if not conversation_ids:
            return []
        response = (
            self.client.table("messages")
            .select("*")
            .in_("conversation_id", conversation_ids)
            .order("created_at")
            .execute()
        )
        return response.data or []
