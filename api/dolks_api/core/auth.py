from dataclasses import dataclass, field


@dataclass(slots=True)
class Principal:
    subject: str
    email: str | None = None
    access_token: str | None = field(default=None, repr=False)
    roles: set[str] = field(default_factory=set)

    @property
    def actor_id(self) -> str:
        return self.subject

    def require_role(self, role: str) -> None:
        if role not in self.roles:
            raise PermissionError(f"{role} access required")
