from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication

from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.enums import ActorRole

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"
ACTOR_NAME_HEADER = "X-Actor-Name"


class ActorUser:
    """
    Usuário mínimo compatível com DRF que carrega o ``Actor`` de domínio.
    """
    is_authenticated = True
    is_anonymous = False

    def __init__(self, actor: Actor):
        self.actor = actor
        self.id = actor.id
        self.role = actor.role.value

    def __str__(self):
        return f"<ActorUser id={self.id} role={self.role}>"


class ActorHeaderAuthentication(BaseAuthentication):
    """
    Confia na identidade já resolvida pelo provedor de sessão (gateway),
    que injeta ``X-Actor-Id`` e ``X-Actor-Role`` em cada requisição.
    """

    def authenticate(self, request):
        actor_id = (request.headers.get(ACTOR_ID_HEADER) or "").strip()
        role = (request.headers.get(ACTOR_ROLE_HEADER) or "").strip().lower()
        if not actor_id and not role:
            return None
        if not actor_id:
            raise exceptions.AuthenticationFailed(f"Header {ACTOR_ID_HEADER} ausente.")
        try:
            actor_role = ActorRole(role)
        except ValueError:
            raise exceptions.AuthenticationFailed(f"Papel inválido: {role!r}")  # noqa: B904

        actor = Actor(id=actor_id, role=actor_role, name=request.headers.get(ACTOR_NAME_HEADER))
        return (ActorUser(actor), None)

    def authenticate_header(self, request):
        return "Actor"
