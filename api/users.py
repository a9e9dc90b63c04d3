from __future__ import annotations

from flask import Blueprint, request, g
from sqlalchemy import func, select

from models import storage
from models.user import User
from models.subscription import Subscription
from models.schemas.user import (
    AccountUpdateSchema,
    AvatarUpdateSchema,
    CoverImageUpdateSchema,
    UserOutSchema,
    ChannelProfileSchema,
)
from models.schemas.video import WatchedVideoOutSchema
from services.errors import BadRequestError, NotFoundError
from utils.decorators import jwt_required

from .errors import api_response

bp = Blueprint("users", __name__)

account_update_schema = AccountUpdateSchema()
avatar_update_schema = AvatarUpdateSchema()
cover_image_update_schema = CoverImageUpdateSchema()
user_out_schema = UserOutSchema()
channel_profile_schema = ChannelProfileSchema()
watched_videos_out_schema = WatchedVideoOutSchema(many=True)


@bp.get("/current-user")
@jwt_required()
def current_user():
    """
    Get current user info
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return api_response(user_out_schema.dump(g.current_user), "Current user fetched successfully")


@bp.patch("/update-account")
@jwt_required()
def update_account():
    """
    Update full name and email of the current user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             fullName: { type: string }
             email: { type: string }
    responses:
      200: { description: OK }
      400: { description: Validation error }
      409: { description: Email already taken }
    """
    payload = request.get_json(silent=True)
    data = account_update_schema.load(payload if isinstance(payload, dict) else {})
    if not data["full_name"].strip():
        raise BadRequestError("All fields are required")

    user = g.current_user
    user.full_name = data["full_name"].strip()
    user.email = data["email"]
    user.save()
    return api_response(user_out_schema.dump(user), "Account details updated successfully")


@bp.patch("/avatar")
@jwt_required()
def update_avatar():
    """
    Point the current user's avatar at an already-hosted image
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             avatar: { type: string }
    responses:
      200: { description: OK }
      400: { description: Missing or invalid URL }
    """
    payload = request.get_json(silent=True)
    data = avatar_update_schema.load(payload if isinstance(payload, dict) else {})

    user = g.current_user
    user.avatar = data["avatar"]
    user.save()
    return api_response(user_out_schema.dump(user), "Avatar updated successfully")


@bp.patch("/cover-image")
@jwt_required()
def update_cover_image():
    """
    Point the current user's cover image at an already-hosted image
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             coverImage: { type: string }
    responses:
      200: { description: OK }
      400: { description: Missing or invalid URL }
    """
    payload = request.get_json(silent=True)
    data = cover_image_update_schema.load(payload if isinstance(payload, dict) else {})

    user = g.current_user
    user.cover_image = data["cover_image"]
    user.save()
    return api_response(user_out_schema.dump(user), "Cover image updated successfully")


@bp.get("/c/<user_name>")
@jwt_required()
def channel_profile(user_name: str):
    """
    Channel profile with subscriber counts
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      -  in: path
         name: user_name
         type: string
         required: true
    responses:
      200: { description: OK }
      404: { description: Channel does not exist }
    """
    user_name = (user_name or "").strip().lower()
    if not user_name:
        raise BadRequestError("userName is missing")

    session = storage.get_session()
    channel = session.query(User).filter(User.user_name == user_name).first()
    if not channel:
        raise NotFoundError("Channel does not exist")

    subscribers_count = session.scalar(
        select(func.count(Subscription.id)).where(Subscription.channel_id == channel.id)
    )
    subscribed_to_count = session.scalar(
        select(func.count(Subscription.id)).where(Subscription.subscriber_id == channel.id)
    )
    is_subscribed = session.scalar(
        select(func.count(Subscription.id)).where(
            Subscription.channel_id == channel.id,
            Subscription.subscriber_id == g.current_user.id,
        )
    ) > 0

    profile = {
        "full_name": channel.full_name,
        "user_name": channel.user_name,
        "email": channel.email,
        "avatar": channel.avatar,
        "cover_image": channel.cover_image,
        "subscribers_count": subscribers_count,
        "channels_subscribed_to_count": subscribed_to_count,
        "is_subscribed": is_subscribed,
    }
    return api_response(channel_profile_schema.dump(profile), "User channel fetched successfully")


@bp.get("/history")
@jwt_required()
def watch_history():
    """
    Watch history of the current user, oldest first
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    videos = [entry.video for entry in g.current_user.watch_history]
    return api_response(watched_videos_out_schema.dump(videos), "Watch history fetched successfully")
