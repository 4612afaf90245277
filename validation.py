import os
from pathlib import Path

from credentials import CredentialStore
from documents import DocumentKind, DocumentRepository, is_flat_name
from errors import ValidationFailed

IMAGE_EXTENSIONS = [".jpg", ".png", ".jpeg"]
MIN_USERNAME_LENGTH = 4
MIN_PASSWORD_LENGTH = 4


def first_error(*errors: str | None) -> str | None:
    return next((e for e in errors if e), None)


def validate_new_document_name(name: str, repository: DocumentRepository) -> str | None:
    extensions = DocumentKind.extensions()
    if not name:
        return "A name is required"
    if os.path.splitext(name)[1] not in extensions:
        return ("Invalid file type"
                f"\n(Currently accepting: {', '.join(extensions)}.)")
    if not is_flat_name(name):
        return "Document names cannot contain path separators."
    if repository.exists(name):
        return f"{name} exists already!"
    return None


def validate_new_username(username: str, store: CredentialStore) -> str | None:
    if len(username) < MIN_USERNAME_LENGTH:
        return f"User name must be at least {MIN_USERNAME_LENGTH} characters long."
    if username in store:
        return "This user name exists already, please choose a different one."
    return None


def validate_new_password(password: str) -> str | None:
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
    return None


def validate_new_image(image_name: str, description: str, public_dir: Path) -> str | None:
    if not is_flat_name(image_name) or not (Path(public_dir) / image_name).is_file():
        return "Image cannot be found."
    if not description:
        return "Description cannot be empty."
    if os.path.splitext(image_name)[1] not in IMAGE_EXTENSIONS:
        return ("Invalid image type. "
                f"Currently accepting: {', '.join(IMAGE_EXTENSIONS)}.")
    return None


def ensure_valid(error: str | None) -> None:
    if error:
        raise ValidationFailed(error)
