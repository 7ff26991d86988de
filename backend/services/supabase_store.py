"""Signal store backed by Supabase PostgreSQL."""
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY
from models.conversation import Conversation, Turn, VISITOR
from models.engagement import EngagementSample
from models.lead import Lead
from models.product import Product
from services.errors import ConversationNotFound, StorageUnavailable
from services.signal_store import (
    SignalStore,
    CONVERSATION_CREATED,
    VISITOR_NAME_SET,
    TURN_APPENDED,
    ENGAGEMENT_SAMPLE_APPENDED,
    LEAD_SAVED,
    utc_now,
)

logger = logging.getLogger(__name__)

# The messages table uses the chat-completion role name for visitors
_DB_VISITOR_ROLE = "user"


class SupabaseSignalStore(SignalStore):
    """
    Store conversations, messages, engagement samples and leads in Supabase.

    Tables: conversations, messages, emotion_analysis, products, leads.
    Every call goes straight to the database; nothing is buffered. Any
    client failure is re-raised as StorageUnavailable.
    """

    def __init__(
        self,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        super().__init__()
        self.client: Client = create_client(supabase_url, supabase_key)
        # Appends from this process get strictly increasing timestamps
        self._append_lock = threading.Lock()
        self._last_append_at: Optional[datetime] = None
        logger.info("SupabaseSignalStore initialized")

    def _execute(self, operation: str, query) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as e:
            logger.error(f"Supabase {operation} failed: {e}", exc_info=True)
            raise StorageUnavailable(f"Storage unavailable during {operation}") from e
        return result.data or []

    # Conversations

    def create_conversation(self, visitor_name: Optional[str] = None) -> Conversation:
        # The database assigns the id
        rows = self._execute(
            "create_conversation",
            self.client.table("conversations").insert({"visitor_name": visitor_name or None}),
        )
        conversation = self._to_conversation(self._inserted_row("create_conversation", rows))
        logger.info(f"Created new conversation: {conversation.conversation_id}")
        self._notify(CONVERSATION_CREATED, conversation.conversation_id, conversation)
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        rows = self._execute(
            "get_conversation",
            self.client.table("conversations").select("*").eq("id", conversation_id),
        )
        if not rows:
            return None
        return self._to_conversation(rows[0])

    def set_visitor_name(self, conversation_id: str, visitor_name: str) -> Conversation:
        rows = self._execute(
            "set_visitor_name",
            self.client.table("conversations")
            .update({"visitor_name": visitor_name})
            .eq("id", conversation_id),
        )
        if not rows:
            raise ConversationNotFound(conversation_id)
        conversation = self._to_conversation(rows[0])
        self._notify(VISITOR_NAME_SET, conversation_id, conversation)
        return conversation

    def count_conversations(self, since: Optional[datetime] = None) -> int:
        query = self.client.table("conversations").select("id", count="exact")
        if since is not None:
            query = query.gte("created_at", since.isoformat())
        try:
            result = query.execute()
        except Exception as e:
            logger.error(f"Supabase count_conversations failed: {e}", exc_info=True)
            raise StorageUnavailable("Storage unavailable during count_conversations") from e
        return result.count or 0

    # Turns

    def append_turn(self, conversation_id: str, role: str, content: str) -> Turn:
        self._check_role(role)
        self._require_conversation(conversation_id)
        with self._append_lock:
            created_at = self._next_timestamp()
            rows = self._execute(
                "append_turn",
                self.client.table("messages").insert({
                    "conversation_id": conversation_id,
                    "role": _DB_VISITOR_ROLE if role == VISITOR else role,
                    "content": content,
                    "created_at": created_at.isoformat(),
                }),
            )
            turn = Turn(
                turn_id=str(self._inserted_row("append_turn", rows)["id"]),
                conversation_id=conversation_id,
                role=role,
                content=content,
                created_at=created_at,
            )

        logger.debug(f"Appended {role} turn to conversation {conversation_id}")
        self._notify(TURN_APPENDED, conversation_id, turn)
        return turn

    def list_turns(self, conversation_id: str) -> List[Turn]:
        rows = self._execute(
            "list_turns",
            self.client.table("messages")
            .select("*")
            .eq("conversation_id", conversation_id)
            .order("created_at", desc=False),
        )
        return [
            Turn(
                turn_id=row["id"],
                conversation_id=row["conversation_id"],
                role=VISITOR if row["role"] == _DB_VISITOR_ROLE else row["role"],
                content=row["content"],
                created_at=self._parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]

    def count_turns(self) -> int:
        try:
            result = self.client.table("messages").select("id", count="exact").execute()
        except Exception as e:
            logger.error(f"Supabase count_turns failed: {e}", exc_info=True)
            raise StorageUnavailable("Storage unavailable during count_turns") from e
        return result.count or 0

    # Engagement samples

    def append_engagement_sample(
        self,
        conversation_id: str,
        emotion: str,
        confidence: float,
        engagement_score: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EngagementSample:
        self._require_conversation(conversation_id)
        created_at = utc_now()
        metadata = dict(metadata or {})
        rows = self._execute(
            "append_engagement_sample",
            self.client.table("emotion_analysis").insert({
                "conversation_id": conversation_id,
                "emotion": emotion,
                "confidence": confidence,
                "engagement_score": engagement_score,
                "facial_data": metadata,
                "created_at": created_at.isoformat(),
            }),
        )
        sample = EngagementSample(
            sample_id=str(self._inserted_row("append_engagement_sample", rows)["id"]),
            conversation_id=conversation_id,
            emotion=emotion,
            confidence=confidence,
            engagement_score=engagement_score,
            created_at=created_at,
            metadata=metadata,
        )
        self._notify(ENGAGEMENT_SAMPLE_APPENDED, conversation_id, sample)
        return sample

    def list_engagement_samples(self, conversation_id: str) -> List[EngagementSample]:
        rows = self._execute(
            "list_engagement_samples",
            self.client.table("emotion_analysis")
            .select("*")
            .eq("conversation_id", conversation_id)
            .order("created_at", desc=False),
        )
        return [self._to_sample(row) for row in rows]

    def list_all_engagement_samples(self) -> List[EngagementSample]:
        rows = self._execute(
            "list_all_engagement_samples",
            self.client.table("emotion_analysis").select("*").order("created_at", desc=False),
        )
        return [self._to_sample(row) for row in rows]

    # Catalog

    def list_products(self) -> List[Product]:
        rows = self._execute(
            "list_products",
            self.client.table("products").select("*").order("position", desc=False),
        )
        return [
            Product(
                product_id=str(row["id"]),
                name=row["name"],
                description=row.get("description") or "",
                price=float(row.get("price") or 0),
                features=list(row.get("features") or []),
                category=row.get("category"),
            )
            for row in rows
        ]

    # Leads

    def get_lead_for_conversation(self, conversation_id: str) -> Optional[Lead]:
        rows = self._execute(
            "get_lead_for_conversation",
            self.client.table("leads").select("*").eq("conversation_id", conversation_id),
        )
        return self._to_lead(rows[0]) if rows else None

    def save_lead(self, lead: Lead) -> Lead:
        # An existing row keeps its id; a new row gets one from the database
        rows = self._execute(
            "save_lead",
            self.client.table("leads").upsert(
                {
                    "conversation_id": lead.conversation_id,
                    "name": lead.name,
                    "email": lead.email,
                    "phone": lead.phone,
                    "lead_score": lead.lead_score,
                    "score_category": lead.score_category,
                    "interest": lead.interest,
                    "status": lead.status,
                    "created_at": lead.created_at.isoformat(),
                },
                on_conflict="conversation_id",
            ),
        )
        saved = self._to_lead(self._inserted_row("save_lead", rows))
        self._notify(LEAD_SAVED, lead.conversation_id, saved)
        return saved

    def list_leads(self) -> List[Lead]:
        rows = self._execute(
            "list_leads",
            self.client.table("leads").select("*").order("lead_score", desc=True),
        )
        return [self._to_lead(row) for row in rows]

    # Helpers

    def _next_timestamp(self) -> datetime:
        now = utc_now()
        if self._last_append_at is not None and now <= self._last_append_at:
            now = self._last_append_at + timedelta(microseconds=1)
        self._last_append_at = now
        return now

    @staticmethod
    def _inserted_row(operation: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not rows:
            raise StorageUnavailable(f"Storage returned no row for {operation}")
        return rows[0]

    def _require_conversation(self, conversation_id: str) -> None:
        if self.get_conversation(conversation_id) is None:
            raise ConversationNotFound(conversation_id)

    def _to_conversation(self, row: Dict[str, Any]) -> Conversation:
        return Conversation(
            conversation_id=row["id"],
            created_at=self._parse_timestamp(row["created_at"]),
            visitor_name=row.get("visitor_name"),
        )

    def _to_sample(self, row: Dict[str, Any]) -> EngagementSample:
        return EngagementSample(
            sample_id=str(row["id"]),
            conversation_id=row["conversation_id"],
            emotion=row["emotion"],
            confidence=float(row["confidence"]),
            engagement_score=int(row["engagement_score"]),
            created_at=self._parse_timestamp(row["created_at"]),
            metadata=row.get("facial_data") or {},
        )

    def _to_lead(self, row: Dict[str, Any]) -> Lead:
        return Lead(
            lead_id=str(row["id"]),
            conversation_id=row["conversation_id"],
            name=row["name"],
            lead_score=int(row["lead_score"]),
            score_category=row["score_category"],
            created_at=self._parse_timestamp(row["created_at"]),
            email=row.get("email"),
            phone=row.get("phone"),
            interest=row.get("interest"),
            status=row.get("status") or "new",
        )

    def _parse_timestamp(self, timestamp_str: str) -> datetime:
        """
        Parse timestamp string from Supabase, handling various formats.

        Supabase can return timestamps with varying microsecond precision,
        which Python's fromisoformat() can't always handle. This method
        normalizes the fractional part to six digits.

        Args:
            timestamp_str: Timestamp string from Supabase

        Returns:
            datetime object
        """
        timestamp_str = timestamp_str.replace("Z", "+00:00")

        # Format: 2026-02-21T02:08:26.18976+00:00
        if "." in timestamp_str:
            date_part, fraction_and_tz = timestamp_str.split(".", 1)
            for sign in ("+", "-"):
                if sign in fraction_and_tz:
                    fraction, tz = fraction_and_tz.split(sign, 1)
                    fraction = fraction[:6].ljust(6, "0")
                    timestamp_str = f"{date_part}.{fraction}{sign}{tz}"
                    break

        return datetime.fromisoformat(timestamp_str)
