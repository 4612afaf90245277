import pytest

from errors import ValidationFailed
from validation import (ensure_valid, first_error, validate_new_document_name,
                        validate_new_image, validate_new_password,
                        validate_new_username)


def test_document_name_required(repository):
    assert validate_new_document_name("", repository) == "A name is required"


@pytest.mark.parametrize("name", ["x", "notes.pdf", "notes.md.bak"])
def test_document_name_invalid_type(repository, name):
    error = validate_new_document_name(name, repository)
    assert error.startswith("Invalid file type")
    assert ".txt, .md" in error


def test_document_name_exists(repository):
    repository.create("about.md")
    assert validate_new_document_name("about.md", repository) == "about.md exists already!"


def test_document_name_with_separator(repository):
    assert "path separators" in validate_new_document_name("../about.md", repository)


def test_document_name_ok(repository):
    assert validate_new_document_name("about.md", repository) is None


def test_username(store):
    assert "at least 4" in validate_new_username("abc", store)
    assert "exists already" in validate_new_username("admin", store)
    assert validate_new_username("Admin", store) is None


def test_password():
    assert "at least 4" in validate_new_password("abc")
    assert validate_new_password("abcd") is None


def test_image_checks_in_order(public_dir):
    assert validate_new_image("none.jpg", "", public_dir) == "Image cannot be found."
    assert validate_new_image("1.jpg", "", public_dir) == "Description cannot be empty."
    assert validate_new_image("1.pdf", "doc", public_dir).startswith("Invalid image type.")
    assert validate_new_image("1.jpg", "image", public_dir) is None


def test_image_outside_public_dir(public_dir):
    assert validate_new_image("../public/1.jpg", "x", public_dir) == "Image cannot be found."


def test_first_error_and_ensure_valid():
    assert first_error(None, "second", "third") == "second"
    assert first_error(None, None) is None
    ensure_valid(None)
    with pytest.raises(ValidationFailed) as exc:
        ensure_valid("nope")
    assert exc.value.message == "nope"
