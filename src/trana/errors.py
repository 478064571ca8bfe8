"""Exception hierarchy shared by every trana operation."""


class TranaError(Exception):
    """Base class for all errors raised by trana."""


class ValidationError(TranaError):
    """Caller input was rejected; nothing was written."""


class NotFoundError(TranaError):
    """A deck or card lookup by id matched nothing."""


class ConflictError(TranaError):
    """A card's front is already used by another card in the same deck."""

    def __init__(self, incoming, existing_id: int):
        self.incoming = incoming
        self.existing_id = existing_id
        # Cards read from a file usually carry no id
        if incoming.id:
            label = f"card {incoming.id} ({incoming.front!r})"
        else:
            label = f"card {incoming.front!r} / {incoming.back!r}"
        super().__init__(f"{label} has the same front as existing card {existing_id}")


class StorageError(TranaError):
    """The backing database could not be opened or configured."""


class StorageIntegrityError(StorageError):
    """The backing file failed an integrity or foreign-key check."""


class TransactionError(TranaError):
    """A transactional operation failed and was rolled back."""


class TransactionCancelled(TransactionError):
    """The caller cancelled a transaction before it committed."""


class ConfigError(TranaError):
    """The configuration directory could not be determined."""
