import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS

from .api.normalization_routes import normalization_bp

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Configuration
MAX_ATTRIBUTES = int(os.getenv('NORMALIZER_MAX_ATTRIBUTES', '16'))
MAX_CONTENT_LENGTH = int(os.getenv('NORMALIZER_MAX_CONTENT_LENGTH', str(5 * 1024 * 1024)))
CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


def create_app(test_config=None):
    """ Builds the Flask app; test_config overrides the environment-derived settings. """
    app = Flask(__name__)
    app.config.update(
        MAX_ATTRIBUTES=MAX_ATTRIBUTES,
        MAX_CONTENT_LENGTH=MAX_CONTENT_LENGTH,
        CORS_ORIGINS=CORS_ORIGINS,
        LOG_LEVEL=LOG_LEVEL,
    )
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    origins = app.config['CORS_ORIGINS']
    if isinstance(origins, str) and origins != '*':
        origins = [origin.strip() for origin in origins.split(',') if origin.strip()]
    CORS(app, origins=origins)

    app.register_blueprint(normalization_bp)

    @app.errorhandler(413)
    def payload_too_large(_error):
        return jsonify({"error": "Request body too large", "success": False}), 413

    logger.debug("App configured: max %s attributes", app.config['MAX_ATTRIBUTES'])
    return app


def main():
    """ Console entry point; also reachable as `python -m normalization_backend.app`. """
    create_app().run(host='0.0.0.0', port=int(os.getenv('PORT', '3000')),
                     debug=os.getenv('FLASK_DEBUG', '0') == '1')


if __name__ == '__main__':
    main()
