"""
Flask route handlers for the Bedtime Stories API.

Handlers parse the request, call a service and serialize the result.
Errors are raised as ``APIError`` subclasses and rendered by the handlers
registered in ``utils.errors``.
"""

import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask
    from flask_limiter import Limiter

from flask import Response, current_app, jsonify, request, stream_with_context
from flask_login import login_user, logout_user

from src.bedtime.auth import User, bearer_token, get_current_session, get_current_user_id, require_user_id
from src.bedtime.document import blocks_to_dicts, compose_story, reveal_paragraphs
from src.bedtime.utils.errors import AuthenticationError, NotFoundError, ValidationError
from src.bedtime.api.helpers import (
    get_draft_store,
    get_image_provider,
    get_json_body,
    get_text_provider,
    get_user_storage,
)
from src.bedtime.services import (
    ImageService,
    StoryExportService,
    StoryGenerationService,
    StoryService,
    StoryValidationService,
)

logger = logging.getLogger(__name__)

_validation_service = StoryValidationService()
_story_service = StoryService(repository=None)  # resolved from current_app
_export_service = StoryExportService(_story_service)


def _image_service() -> ImageService:
    return ImageService(
        provider_factory=get_image_provider,
        placeholder=current_app.config["PLACEHOLDER_IMAGE"],
        proxy_timeout=current_app.config["PROXY_TIMEOUT_SECONDS"],
    )


def _generation_service() -> StoryGenerationService:
    return StoryGenerationService(
        llm_factory=get_text_provider,
        image_service=_image_service(),
        draft_store=get_draft_store(),
    )


def _auth_response(user: dict, token: str):
    login_user(User.from_dict(user))
    return jsonify({"user": user, "token": token})


def register_routes(flask_app: 'Flask', limiter_instance: 'Limiter') -> None:
    """
    Register all application routes.

    Args:
        flask_app: Flask application instance
        limiter_instance: Limiter instance for rate limiting
    """

    @flask_app.route('/api/health')
    def health():
        return jsonify({"status": "ok"})

    # ------------------------------------------------------------------ auth

    @flask_app.route('/api/auth/register', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["AUTH_RATE_LIMIT"])
    def register():
        """
        Create an account and sign it in.

        Request Body (JSON):
            - email (str, required)
            - password (str, required, 8+ characters)
            - name (str, optional)

        Returns:
            {"user": {...}, "token": str}
        """
        fields = _validation_service.validate_registration(get_json_body())
        storage = get_user_storage()
        user = storage.create_user(fields["email"], fields["password"], fields["name"])
        if user is None:
            raise ValidationError(
                "An account with this email already exists.",
                details={"field": "email"}
            )
        logger.info(f"Registered user {user['id']}")
        return _auth_response(user, storage.create_session(user["id"]))

    @flask_app.route('/api/auth/login', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["AUTH_RATE_LIMIT"])
    def login():
        fields = _validation_service.validate_login(get_json_body())
        storage = get_user_storage()
        user = storage.verify_credentials(fields["email"], fields["password"])
        if user is None:
            raise AuthenticationError("Invalid email or password")
        return _auth_response(user, storage.create_session(user["id"]))

    @flask_app.route('/api/auth/logout', methods=['POST'])
    def logout():
        token = bearer_token()
        if token:
            get_user_storage().delete_session(token)
        logout_user()
        return jsonify({"success": True})

    @flask_app.route('/api/auth/session', methods=['GET'])
    def session_info():
        """Current session, or null when signed out."""
        return jsonify(get_current_session())

    # --------------------------------------------------------------- stories

    @flask_app.route('/api/stories', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["STORY_RATE_LIMIT"])
    def create_story():
        """
        Save a story for the signed-in user.

        Request Body (JSON):
            - title (str, required)
            - content (str, required)
            - images (list[str], optional)
            - metadata (object, optional)

        Returns:
            The stored story record

        Raises:
            AuthenticationError: No session (401)
            ValidationError: Validator message (400)
            UpstreamServiceError: Storage failure (500)
        """
        user_id = require_user_id()
        story = _story_service.create_story(request.get_json(silent=True), user_id)
        return jsonify(story.to_dict())

    @flask_app.route('/api/stories', methods=['GET'])
    @limiter_instance.limit(lambda: current_app.config["STORY_RATE_LIMIT"])
    def list_stories():
        """All stories of the signed-in user, newest first."""
        user_id = require_user_id()
        return jsonify([story.to_dict() for story in _story_service.list_stories(user_id)])

    @flask_app.route('/api/stories/<story_id>', methods=['GET'])
    @limiter_instance.limit(lambda: current_app.config["STORY_RATE_LIMIT"])
    def get_story(story_id):
        user_id = require_user_id()
        return jsonify(_story_service.get_story(story_id, user_id).to_dict())

    @flask_app.route('/api/stories/<story_id>/images', methods=['PUT'])
    @limiter_instance.limit(lambda: current_app.config["STORY_RATE_LIMIT"])
    def update_story_images(story_id):
        """Assign the final illustrations of a saved story."""
        user_id = require_user_id()
        story = _story_service.update_images(story_id, user_id, get_json_body())
        return jsonify(story.to_dict())

    @flask_app.route('/api/stories/<story_id>/document', methods=['GET'])
    def get_story_document(story_id):
        """Story as an ordered list of text and image blocks."""
        user_id = require_user_id()
        story = _story_service.get_story(story_id, user_id)
        return jsonify({
            "id": story.id,
            "title": story.title,
            "blocks": blocks_to_dicts(compose_story(story)),
        })

    @flask_app.route('/api/stories/<story_id>/reveal', methods=['GET'])
    def reveal_story(story_id):
        """
        Stream paragraphs one at a time as newline-delimited JSON.

        Each line is ``{"paragraphIndex": int, "text": str}``. The interval
        comes from ``REVEAL_INTERVAL_SECONDS`` and may be overridden by an
        ``interval`` query parameter (0 to 10 seconds).
        """
        user_id = require_user_id()
        story = _story_service.get_story(story_id, user_id)
        interval = request.args.get('interval', current_app.config["REVEAL_INTERVAL_SECONDS"], type=float)
        interval = min(max(0.0, interval), 10.0)

        def generate():
            for block in reveal_paragraphs(story.content, interval=interval):
                yield json.dumps({"paragraphIndex": block.paragraph_index, "text": block.text}) + "\n"

        return Response(stream_with_context(generate()), mimetype='application/x-ndjson')

    @flask_app.route('/api/stories/<story_id>/export/<format_type>', methods=['GET'])
    @limiter_instance.limit(lambda: current_app.config["STORY_RATE_LIMIT"])
    def export_story(story_id, format_type):
        """Download a story as pdf, docx, epub, markdown or txt."""
        user_id = require_user_id()
        return _export_service.export_story(story_id, user_id, format_type)

    @flask_app.route('/api/stories/<story_id>/continue', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["GENERATE_RATE_LIMIT"])
    def continue_story(story_id):
        """
        Generate the next chapter of a saved story.

        Request Body (JSON):
            - prompt (str, optional): what should happen next
            - newCharacters, newSetting, newMoral (str, optional)
            - illustrate (bool, optional)
        """
        user_id = require_user_id()
        options = _validation_service.validate_continuation_input(get_json_body())
        story = _story_service.get_story(story_id, user_id)
        return jsonify(_generation_service().continue_story(story, owner_id=user_id, **options))

    # ------------------------------------------------------------ generation

    @flask_app.route('/api/generate-story', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["GENERATE_RATE_LIMIT"])
    def generate_story():
        """
        Generate a story, title and illustrations.

        Request Body (JSON):
            - age, characters, setting, moral (str, required)
            - length (str, optional): short | medium | long
            - tone (str, optional)
            - continuation (bool), previousStory (str), prompt (str): optional
            - illustrate (bool, optional): generate images instead of placeholders

        Returns:
            {"id", "title", "content", "images", "metadata"}
        """
        generation_request = _validation_service.validate_generation_input(get_json_body())
        story = _generation_service().generate_story(generation_request, owner_id=get_current_user_id())
        return jsonify(story)

    @flask_app.route('/api/generate-image', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["IMAGE_RATE_LIMIT"])
    def generate_image():
        """
        Generate one illustration.

        Failures are not request errors: the placeholder is returned with
        ``placeholder: true`` and the provider's message in ``error``.
        """
        prompt = _validation_service.validate_image_prompt(get_json_body().get('prompt'))
        image_url, error = _image_service().generate_or_placeholder(prompt)
        body = {"imageUrl": image_url, "placeholder": error is not None}
        if error:
            body["error"] = error
        return jsonify(body)

    @flask_app.route('/api/proxy-image', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["IMAGE_RATE_LIMIT"])
    def proxy_image():
        """Fetch a remote image for the signed-in user."""
        require_user_id()
        url = _validation_service.validate_proxy_url(get_json_body().get('url'))
        image = _image_service().proxy_image(url)
        return Response(
            image.content,
            mimetype=image.content_type,
            headers={"Cache-Control": image.cache_control},
        )

    # ---------------------------------------------------------------- drafts

    @flask_app.route('/api/drafts', methods=['GET'])
    def list_drafts():
        """Recently generated, unsaved stories of the signed-in user."""
        user_id = require_user_id()
        limit = request.args.get('limit', None, type=int)
        return jsonify(get_draft_store().recent(user_id, limit=limit))

    @flask_app.route('/api/drafts/<draft_id>', methods=['GET'])
    def get_draft(draft_id):
        user_id = require_user_id()
        draft = get_draft_store().get(user_id, draft_id)
        if draft is None:
            raise NotFoundError("Draft", draft_id)
        return jsonify(draft)
