"""
=============================================================================
BEDROCK SERVICE - Amazon Bedrock (Hosted Language Models) Integration
=============================================================================

What is Bedrock?
----------------
Amazon Bedrock is a managed service that hosts foundation models behind a
single API. We don't run any model ourselves; we send a prompt and get
text back.

In this application, we use Bedrock to:
- Turn the community usage digest into a short written analysis
  (top consumers, saving tips, encouragement)

The insight panel is optional. When Bedrock is disabled or fails, the
dashboard shows a fallback message instead (see eco_village_core.summary).

Key Concepts:
-------------
1. Model ID: which hosted model answers (e.g. an Anthropic or Amazon model)
2. Converse API: one request/response call that takes a list of messages
3. Inference config: limits such as max tokens and temperature
=============================================================================
"""

import logging
import os

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from backend.lib.eco_village_core.errors import ServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = "amazon.nova-lite-v1:0"


class BedrockService:
    """
    A small wrapper around the Bedrock Runtime client.

    Usage:
        bedrock = BedrockService()
        text = bedrock.generate("Summarize this usage ...")
    """

    def __init__(self, model_id: str = None, client=None):
        """
        Initialize the Bedrock service.

        AWS credentials are read from the environment, like every other AWS
        client in this project:
        - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY
        - AWS_SESSION_TOKEN (temporary credentials only)
        - AWS_REGION (default: us-east-1)

        Args:
            model_id: Optional model override. Defaults to BEDROCK_MODEL_ID
                      from the environment.
            client: Optional pre-built client (used by tests).
        """
        self.model_id = model_id or os.getenv('BEDROCK_MODEL_ID', DEFAULT_MODEL_ID)
        self.region = os.getenv('AWS_REGION', 'us-east-1')
        self.max_tokens = int(os.getenv('BEDROCK_MAX_TOKENS', '800'))
        self.temperature = float(os.getenv('BEDROCK_TEMPERATURE', '0.5'))

        if client is None:
            session_token = os.getenv('AWS_SESSION_TOKEN')
            client = boto3.client(
                'bedrock-runtime',
                region_name=self.region,
                aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
                aws_session_token=session_token if session_token else None
            )
        self.client = client

    def generate(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the model's text.

        Raises:
            ServiceError: on any AWS error (auth, throttling, network,
                          missing credentials) or when the response has no
                          text block.
        """
        try:
            response = self.client.converse(
                modelId=self.model_id,
                messages=[{"role": "user", "content": [{"text": prompt}]}],
                inferenceConfig={
                    "maxTokens": self.max_tokens,
                    "temperature": self.temperature,
                },
            )
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            raise ServiceError(f"Bedrock request failed ({error_code}): {e}") from e
        except BotoCoreError as e:
            raise ServiceError(f"Bedrock request failed: {e}") from e

        try:
            blocks = response["output"]["message"]["content"]
        except (KeyError, TypeError) as e:
            raise ServiceError(f"Malformed Bedrock response: missing {e}") from e

        text = "".join(block.get("text", "") for block in blocks if isinstance(block, dict))
        usage = response.get("usage") or {}
        logger.info("Bedrock %s answered (%s output tokens)", self.model_id, usage.get("outputTokens", "?"))
        return text
