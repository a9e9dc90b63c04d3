from __future__ import annotations

import uuid

from flask import Blueprint
from sqlalchemy import func, select

from models import storage
from models.user import User
from models.subscription import Subscription
from models.video import Video
from models.schemas.video import ChannelStatsSchema
from services.errors import BadRequestError, NotFoundError
from utils.decorators import jwt_required

from .errors import api_response

bp = Blueprint("dashboard", __name__)

channel_stats_schema = ChannelStatsSchema()


def _parse_channel_id(raw: str) -> str:
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        raise BadRequestError("Invalid channel ID")


@bp.get("/stats/<channel_id>")
@jwt_required()
def channel_stats(channel_id: str):
    """
    Totals for a channel: subscribers, videos and views
    ---
    tags:
      - Dashboard
    security:
      - Bearer: []
    parameters:
      -  in: path
         name: channel_id
         type: string
         required: true
    responses:
      200: { description: OK }
      400: { description: Invalid channel ID }
      404: { description: Channel does not exist }
    """
    channel_id = _parse_channel_id(channel_id)
    if storage.get(User, channel_id) is None:
        raise NotFoundError("Channel does not exist")

    session = storage.get_session()
    stats = {
        "total_subscribers": session.scalar(
            select(func.count(Subscription.id)).where(Subscription.channel_id == channel_id)
        ),
        "total_videos": session.scalar(
            select(func.count(Video.id)).where(Video.owner_id == channel_id)
        ),
        "total_views": session.scalar(
            select(func.coalesce(func.sum(Video.views), 0)).where(Video.owner_id == channel_id)
        ),
    }
    return api_response(channel_stats_schema.dump(stats), "Channel stats fetched successfully")
