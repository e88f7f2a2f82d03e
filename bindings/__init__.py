"""httpx bindings for the Mistral AI and OpenAI REST APIs."""

import logging

logging.getLogger("bindings").addHandler(logging.NullHandler())
