"""Record-level validation shared by the models."""


def humanize(field: str) -> str:
    return field.replace("_", " ").capitalize()


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (dict, list)):
        return not value
    return False


class Validatable:
    """Collects human-readable messages in ``errors`` instead of raising.

    Subclasses implement ``validate()`` and call ``add_error``; callers use
    ``is_valid()`` and read ``errors`` on failure.
    """

    @property
    def errors(self) -> list[str]:
        return self.__dict__.setdefault("_errors", [])

    def add_error(self, field: str | None, message: str) -> None:
        self.errors.append(f"{humanize(field)} {message}" if field else message)

    def validate_presence(self, *fields: str) -> None:
        for field in fields:
            if is_blank(getattr(self, field)):
                self.add_error(field, "can't be blank")

    def validate(self) -> None:
        pass

    def is_valid(self) -> bool:
        self.errors.clear()
        self.validate()
        return not self.errors
