from dataclasses import dataclass
import enum

from marketplace.models.base import BaseModel, Record, utc_now_iso


class ChatStatus(enum.Enum):
    sent = "sent"
    delivered = "delivered"
    read = "read"


def conversation_key(user_a, user_b):
    """Order-independent key shared by every message between two users."""
    return ':'.join(sorted([str(user_a), str(user_b)]))


@dataclass
class Chat(Record):
    id: str
    user_sender: str
    user_receiver: str
    chat: str
    datetime: str = None
    status: str = ChatStatus.sent.value
    conversation: str = None
    created_at: str = None
    updated_at: str = None
    deleted_at: str = None

    def to_json(self):
        data = super().to_json()
        data.pop('conversation', None)
        return data


class ChatModel(BaseModel):
    collection_name = 'chats'
    record_class = Chat
    required_fields = ('user_sender', 'user_receiver', 'chat')
    immutable_fields = ('id', 'created_at', 'user_sender', 'user_receiver', 'conversation')

    def create(self, chat_data):
        if any(not chat_data.get(name) for name in self.required_fields):
            raise ValueError("user_sender, user_receiver, and chat message are required.")
        now = utc_now_iso()
        chat = Chat(
            id=self.collection.new_id(),
            user_sender=chat_data['user_sender'],
            user_receiver=chat_data['user_receiver'],
            chat=chat_data['chat'],
            datetime=chat_data.get('datetime') or now,
            status=chat_data.get('status') or ChatStatus.sent.value,
            conversation=conversation_key(chat_data['user_sender'], chat_data['user_receiver']),
            created_at=now,
            updated_at=None,
        )
        return self._insert(chat)

    def get_conversation(self, user_id_1, user_id_2, page=1, limit=50):
        """Messages between two users in either direction, oldest first."""
        query = (self.collection.query()
                 .live()
                 .where('conversation', conversation_key(user_id_1, user_id_2))
                 .order_by('datetime'))
        messages, pagination = self.paginate(query, page, limit)
        return {
            'messages': [m.to_json() for m in messages],
            'pagination': {
                'currentPage': page,
                'totalPages': pagination['total_pages'],
                'totalMessages': pagination['total'],
                'hasNext': pagination['has_next'],
                'hasPrev': pagination['has_prev'],
                'limit': limit
            }
        }

    def get_user_conversations(self, user_id):
        """Latest message per counterpart, newest conversation first."""
        sent = self.find_all_by('user_sender', user_id)
        received = self.find_all_by('user_receiver', user_id)

        conversations = {}
        for message in sent + received:
            other_user_id = message.user_receiver if message.user_sender == user_id else message.user_sender
            latest = conversations.get(other_user_id)
            if latest is None or message.datetime > latest['lastMessageTime']:
                conversations[other_user_id] = {
                    'otherUserId': other_user_id,
                    'lastMessage': message.chat,
                    'lastMessageTime': message.datetime,
                    'lastMessageStatus': message.status,
                    'lastMessageSender': message.user_sender
                }

        return sorted(conversations.values(), key=lambda c: c['lastMessageTime'], reverse=True)

    def update_status(self, chat_id, new_status):
        self.collection.update(chat_id, {'status': new_status, 'updated_at': utc_now_iso()})
        return True
