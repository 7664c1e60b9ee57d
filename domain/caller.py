from dataclasses import dataclass


@dataclass(frozen=True)
class Caller:
    """Identity handed over by the upstream auth provider."""
    user_id: str
    is_admin: bool = False

    def owns(self, owner_id: str) -> bool:
        return self.is_admin or owner_id == self.user_id
