from flask import Blueprint, request
from http import HTTPStatus
import logging

from marketplace.middleware.auth import token_required
from marketplace.schemas import validate
from marketplace.schemas.chat import ChatPaginationQuery, StartChatRequest, UpdateMessageStatusRequest
from marketplace.services.registry import get_services
from marketplace.utils.errors import BusinessRuleError, ForbiddenError, NotFoundError, handle_errors
from marketplace.utils.responses import success_response

logger = logging.getLogger(__name__)

chat_bp = Blueprint('chat', __name__)


def _message(chat_id):
    message = get_services().chats.find_by_id(chat_id)
    if not message:
        raise NotFoundError('Message not found')
    return message


def _public_user(user_id):
    user = get_services().users.find_by_id(user_id)
    return user.to_public_json() if user else None


@chat_bp.route('/chat', methods=['POST'])
@token_required
@handle_errors
def send_message(current_user):
    data = validate(StartChatRequest, request.get_json(silent=True))
    services = get_services()

    if data.receiver_id == current_user.id:
        raise BusinessRuleError('You cannot send a message to yourself')
    if not services.users.find_by_id(data.receiver_id):
        raise NotFoundError('Receiver not found')

    message = services.chats.create({
        'user_sender': current_user.id,
        'user_receiver': data.receiver_id,
        'chat': data.message
    })
    logger.info(f"Message {message.id} sent from {current_user.id} to {data.receiver_id}")
    return success_response(HTTPStatus.CREATED, 'Message sent successfully', {
        'chat_id': message.id,
        'sender_id': message.user_sender,
        'receiver_id': message.user_receiver,
        'message': message.chat,
        'datetime': message.datetime,
        'status': message.status
    })


@chat_bp.route('/chat/conversations', methods=['GET'])
@token_required
@handle_errors
def list_conversations(current_user):
    """Every counterpart the user has exchanged messages with, latest first"""
    conversations = get_services().chats.get_user_conversations(current_user.id)
    for conversation in conversations:
        conversation['otherUser'] = _public_user(conversation['otherUserId'])
    return success_response(HTTPStatus.OK, 'Conversations retrieved successfully', conversations)


@chat_bp.route('/chat/conversation/<user_id>', methods=['GET'])
@token_required
@handle_errors
def get_conversation(current_user, user_id):
    query = validate(ChatPaginationQuery, request.args.to_dict())
    other_user = _public_user(user_id)
    if other_user is None:
        raise NotFoundError('User not found')

    conversation = get_services().chats.get_conversation(current_user.id, user_id, query.page, query.limit)
    conversation['otherUser'] = other_user
    return success_response(HTTPStatus.OK, 'Conversation retrieved successfully', conversation)


@chat_bp.route('/chat/<chat_id>/status', methods=['PUT'])
@token_required
@handle_errors
def update_message_status(current_user, chat_id):
    data = validate(UpdateMessageStatusRequest, request.get_json(silent=True))
    message = _message(chat_id)
    if message.user_receiver != current_user.id:
        raise ForbiddenError('Only the receiver can update the message status')

    get_services().chats.update_status(message.id, data.status)
    return success_response(HTTPStatus.OK, 'Message status updated successfully', {
        'chat_id': message.id,
        'status': data.status
    })


@chat_bp.route('/chat/<chat_id>', methods=['DELETE'])
@token_required
@handle_errors
def delete_message(current_user, chat_id):
    message = _message(chat_id)
    if message.user_sender != current_user.id:
        raise ForbiddenError('You can only delete your own messages')

    get_services().chats.soft_delete(message.id)
    logger.info(f"Message {message.id} deleted by {current_user.id}")
    return success_response(HTTPStatus.OK, 'Message deleted successfully', {'chat_id': message.id})
