class CMSError(Exception):
    """Raised for any condition that is reported to the user as a flash message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(CMSError):

    def __init__(self, name: str):
        super().__init__(f"{name} does not exist")
        self.name = name


class AlreadyExists(CMSError):

    def __init__(self, name: str):
        super().__init__(f"{name} exists already!")
        self.name = name


class Unauthorized(CMSError):
    pass


class AlreadySignedIn(CMSError):
    pass


class ValidationFailed(CMSError):
    pass


class InvalidCredentials(CMSError):

    def __init__(self, username: str = ""):
        super().__init__("Invalid Credentials")
        self.username = username


class UnsupportedDocumentType(RuntimeError):
    pass
