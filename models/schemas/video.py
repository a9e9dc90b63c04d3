from marshmallow import Schema, fields


class VideoOwnerSchema(Schema):
    full_name = fields.String(data_key="fullName")
    user_name = fields.String(data_key="userName")
    avatar = fields.String()


class WatchedVideoOutSchema(Schema):
    id = fields.String()
    title = fields.String()
    description = fields.String()
    video_file = fields.String(data_key="videoFile")
    thumbnail = fields.String()
    duration = fields.Float()
    views = fields.Integer()
    is_published = fields.Boolean(data_key="isPublished")
    created_at = fields.DateTime(data_key="createdAt")
    owner = fields.Nested(VideoOwnerSchema)


class ChannelStatsSchema(Schema):
    total_subscribers = fields.Integer(data_key="totalSubscribers")
    total_videos = fields.Integer(data_key="totalVideos")
    total_views = fields.Integer(data_key="totalViews")
