from marshmallow import Schema, fields, pre_load, validates, ValidationError, RAISE

MIN_PASSWORD_LENGTH = 8


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _norm_user_name(v):
    return v.strip().lower() if isinstance(v, str) else v


class StrictSchema(Schema):
    """Input schemas reject fields they do not declare."""

    class Meta:
        unknown = RAISE


def _check_password_length(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserRegisterSchema(StrictSchema):
    full_name = fields.String(required=True, data_key="fullName")
    user_name = fields.String(required=True, data_key="userName")
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    avatar = fields.Url(required=True)
    cover_image = fields.Url(allow_none=True, data_key="coverImage")

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = _norm_email(data["email"])
            if "userName" in data:
                data["userName"] = _norm_user_name(data["userName"])
        return data

    @validates("full_name")
    def validate_full_name(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Full name must not be blank.")

    @validates("user_name")
    def validate_user_name(self, value, **kwargs):
        if not value:
            raise ValidationError("User name must not be blank.")

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password_length(value)


class UserLoginSchema(StrictSchema):
    email = fields.String(allow_none=True)
    user_name = fields.String(allow_none=True, data_key="userName")
    password = fields.String(required=True, load_only=True)


class RefreshTokenSchema(StrictSchema):
    refresh_token = fields.String(allow_none=True, data_key="refreshToken")


class ChangePasswordSchema(StrictSchema):
    old_password = fields.String(required=True, data_key="oldPassword")
    new_password = fields.String(required=True, data_key="newPassword")

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        _check_password_length(value)


class AccountUpdateSchema(StrictSchema):
    full_name = fields.String(required=True, data_key="fullName")
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class AvatarUpdateSchema(StrictSchema):
    avatar = fields.Url(required=True)


class CoverImageUpdateSchema(StrictSchema):
    cover_image = fields.Url(required=True, data_key="coverImage")


class UserOutSchema(Schema):
    """Public projection: never includes the password hash or refresh token."""
    id = fields.String()
    user_name = fields.String(data_key="userName")
    email = fields.String()
    full_name = fields.String(data_key="fullName")
    avatar = fields.String()
    cover_image = fields.String(allow_none=True, data_key="coverImage")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class ChannelProfileSchema(Schema):
    full_name = fields.String(data_key="fullName")
    user_name = fields.String(data_key="userName")
    email = fields.String()
    avatar = fields.String()
    cover_image = fields.String(allow_none=True, data_key="coverImage")
    subscribers_count = fields.Integer(data_key="subscribersCount")
    channels_subscribed_to_count = fields.Integer(data_key="channelsSubscribedToCount")
    is_subscribed = fields.Boolean(data_key="isSubscribed")
