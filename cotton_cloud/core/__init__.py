# Core module
from cotton_cloud.core.validation import (
    ValidationError,
    ImagePayload,
    decode_image_payload,
    decode_image_batch,
    normalize_mime_type,
)
from cotton_cloud.core.auth import (
    User,
    CredentialService,
    get_current_user,
)
