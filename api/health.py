from flask import Blueprint

bp = Blueprint("health", __name__)


@bp.get("/healthcheck")
def healthcheck():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: OK
            message:
              type: string
              example: Service is running
    """
    return {"status": "OK", "message": "Service is running"}, 200
