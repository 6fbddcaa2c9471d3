"""In-memory user directory for development and testing."""

from refunds.channel.user_directory_port import UserContact, UserDirectoryPort


class FakeUserDirectory(UserDirectoryPort):
    def __init__(self) -> None:
        self.users: dict[str, UserContact] = {}

    def register(self, user_id: str, name: str, email: str) -> UserContact:
        contact = UserContact(user_id=str(user_id), name=name, email=email)
        self.users[str(user_id)] = contact
        return contact

    def find_by_id(self, user_id: str) -> UserContact | None:
        return self.users.get(str(user_id))

    def reset(self) -> None:
        self.users.clear()
