"""Wansiri Hospital Chatbot API.

Backend for the multilingual hospital information chatbot of Wansiri
Hospital. Answers are grounded on the hospital's documents through a hosted
file-search model and enriched with related images and videos.

Main features:
- Chat with conversation memory (MongoDB or in-memory)
- Media recommendations by content category
- Thai, English, Korean, Chinese and Japanese support
- Admin management of the knowledge base documents
"""

__version__ = "1.0.0"
__author__ = "Wansiri Hospital IT"
__email__ = "it@wansiri-hospital.com"

# OpenAPI documentation settings
TITLE = "Wansiri Hospital Chatbot API"
DESCRIPTION = """
API for the Wansiri Hospital chatbot.

## Features

* **Chat**: Answers from the hospital documents, plain or streamed (SSE)
* **Sessions**: Conversation memory with MongoDB and an in-memory fallback
* **Media**: Related images and videos attached to answers
* **Admin**: Upload, list and delete knowledge base documents
"""

VERSION = __version__
CONTACT = {
    "name": "Wansiri Hospital IT",
    "email": "it@wansiri-hospital.com",
}

TAGS_METADATA = [
    {
        "name": "chat",
        "description": "Questions about the hospital answered from its documents",
    },
    {
        "name": "sessions",
        "description": "Conversation history, statistics and clearing",
    },
    {
        "name": "admin",
        "description": "Knowledge base document management (bearer token required)",
    },
    {
        "name": "health",
        "description": "Application status endpoints",
    },
]
