"""Add issues and pull requests to a GitHub Projects (v2) board."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import httpx
import msgspec

from boardsync.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    from .client import AuthenticatedClient

__all__ = [
    "ADD_PROJECT_ITEM_MUTATION",
    "GraphQLError",
    "MutationFailure",
    "MutationFailureKind",
    "MutationOutcome",
    "MutationSuccess",
    "ProjectMutationClient",
    "classify_graphql_errors",
    "encode_add_item_request",
]

logger = get_logger(__name__)

ADD_PROJECT_ITEM_MUTATION = """
mutation AddProjectItem($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
    item {
      id
    }
  }
}
"""

_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_RATE_LIMITED = 429
_HTTP_CLIENT_ERROR_THRESHOLD = 400
_HTTP_SERVER_ERROR_THRESHOLD = 500


class MutationFailureKind(enum.StrEnum):
    """Why an add-item mutation did not produce a project item."""

    TRANSPORT = "transport"
    SERIALIZATION = "serialization"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    SERVICE_ERROR = "service_error"
    AMBIGUOUS = "ambiguous"


@dataclasses.dataclass(frozen=True, slots=True)
class MutationSuccess:
    """The mutation created (or returned the existing) project item."""

    item_id: str


@dataclasses.dataclass(frozen=True, slots=True)
class MutationFailure:
    """The mutation failed; ``message`` is for logs only."""

    kind: MutationFailureKind
    message: str
    status_code: int | None = None


MutationOutcome = MutationSuccess | MutationFailure


class GraphQLError(msgspec.Struct):
    """One entry of a GraphQL ``errors`` array as GitHub returns it."""

    message: str = ""
    type: str | None = None
    path: list[str | int] | None = None
    extensions: dict[str, typ.Any] | None = None

    @property
    def code(self) -> str | None:
        """Return ``type``, falling back to ``extensions.code``."""
        if self.type:
            return self.type
        if self.extensions:
            code = self.extensions.get("code")
            if isinstance(code, str):
                return code
        return None


class _ProjectItem(msgspec.Struct):
    id: str | None = None


class _AddItemPayload(msgspec.Struct):
    item: _ProjectItem | None = None


class _AddItemData(msgspec.Struct, rename={"payload": "addProjectV2ItemById"}):
    payload: _AddItemPayload | None = None


class _AddItemResponse(msgspec.Struct):
    data: _AddItemData | None = None
    errors: list[GraphQLError] | None = None


class _Variables(msgspec.Struct, rename="camel"):
    project_id: str
    content_id: str


class _GraphQLRequest(msgspec.Struct):
    query: str
    variables: _Variables


_ERROR_CODE_KINDS: dict[str, MutationFailureKind] = {
    "NOT_FOUND": MutationFailureKind.NOT_FOUND,
    "RATE_LIMITED": MutationFailureKind.RATE_LIMITED,
    "FORBIDDEN": MutationFailureKind.UNAUTHORIZED,
    "UNAUTHORIZED": MutationFailureKind.UNAUTHORIZED,
    "BAD_CREDENTIALS": MutationFailureKind.UNAUTHORIZED,
    "INTERNAL": MutationFailureKind.SERVICE_ERROR,
    "SERVICE_UNAVAILABLE": MutationFailureKind.SERVICE_ERROR,
    "TIMEOUT": MutationFailureKind.SERVICE_ERROR,
}

# Highest priority first when a response carries several errors.
_KIND_PRIORITY: tuple[MutationFailureKind, ...] = (
    MutationFailureKind.UNAUTHORIZED,
    MutationFailureKind.RATE_LIMITED,
    MutationFailureKind.SERVICE_ERROR,
    MutationFailureKind.NOT_FOUND,
    MutationFailureKind.VALIDATION,
)


def _kind_for_error(error: GraphQLError) -> MutationFailureKind:
    code = error.code
    if code is None:
        return MutationFailureKind.VALIDATION
    return _ERROR_CODE_KINDS.get(code.upper(), MutationFailureKind.VALIDATION)


def classify_graphql_errors(errors: typ.Sequence[GraphQLError]) -> MutationFailure:
    """Collapse a non-empty GraphQL ``errors`` array into one failure.

    Parameters
    ----------
    errors
        Errors reported alongside (or instead of) ``data``.

    Returns
    -------
    MutationFailure
        The highest-priority kind among the errors, with all messages joined.

    """
    kinds = {_kind_for_error(error) for error in errors}
    kind = next(
        (candidate for candidate in _KIND_PRIORITY if candidate in kinds),
        MutationFailureKind.VALIDATION,
    )
    message = ", ".join(error.message for error in errors if error.message)
    return MutationFailure(kind=kind, message=message or "GraphQL error")


def _kind_for_status(response: httpx.Response) -> MutationFailureKind:
    status = response.status_code
    if status == _HTTP_UNAUTHORIZED:
        return MutationFailureKind.UNAUTHORIZED
    if status == _HTTP_RATE_LIMITED or (
        status == _HTTP_FORBIDDEN
        and response.headers.get("x-ratelimit-remaining") == "0"
    ):
        return MutationFailureKind.RATE_LIMITED
    if status == _HTTP_FORBIDDEN:
        return MutationFailureKind.UNAUTHORIZED
    if status == _HTTP_NOT_FOUND:
        return MutationFailureKind.NOT_FOUND
    if status >= _HTTP_SERVER_ERROR_THRESHOLD:
        return MutationFailureKind.SERVICE_ERROR
    return MutationFailureKind.VALIDATION


def _http_failure(response: httpx.Response) -> MutationFailure:
    return MutationFailure(
        kind=_kind_for_status(response),
        message=f"GitHub GraphQL HTTP {response.status_code}",
        status_code=response.status_code,
    )


def encode_add_item_request(project_id: str, content_node_id: str) -> bytes:
    """Encode the add-item request with its ids bound as variables."""
    request = _GraphQLRequest(
        query=ADD_PROJECT_ITEM_MUTATION,
        variables=_Variables(project_id=project_id, content_id=content_node_id),
    )
    return msgspec.json.encode(request)


class ProjectMutationClient:
    """Issue ``addProjectV2ItemById`` and classify the outcome.

    The client holds no credentials; each call uses the
    :class:`~boardsync.github.client.AuthenticatedClient` supplied by the
    caller. Nothing is retried.
    """

    async def add_item(
        self,
        client: AuthenticatedClient,
        project_id: str,
        content_node_id: str,
    ) -> MutationOutcome:
        """Add ``content_node_id`` to ``project_id``.

        Parameters
        ----------
        client
            Caller-supplied client bound to an installation token.
        project_id
            Global node id of the Projects (v2) board.
        content_node_id
            Global node id of the issue or pull request.

        Returns
        -------
        MutationOutcome
            ``MutationSuccess`` only when GitHub returned a non-empty item id.

        """
        log_info(
            logger,
            "Adding content to project project_id=%s content_id=%s",
            project_id,
            content_node_id,
        )
        outcome = await self._execute(client, project_id, content_node_id)
        if isinstance(outcome, MutationFailure):
            log_warning(
                logger,
                "Adding project item failed kind=%s status_code=%s errors=%s",
                outcome.kind,
                outcome.status_code,
                outcome.message,
            )
        else:
            log_info(
                logger,
                "Added project item item_id=%s content_id=%s",
                outcome.item_id,
                content_node_id,
            )
        return outcome

    async def _execute(
        self,
        client: AuthenticatedClient,
        project_id: str,
        content_node_id: str,
    ) -> MutationOutcome:
        try:
            body = encode_add_item_request(project_id, content_node_id)
        except (msgspec.EncodeError, TypeError) as exc:
            return MutationFailure(MutationFailureKind.SERIALIZATION, str(exc))

        try:
            response = await client.post_graphql(body)
        except httpx.TimeoutException as exc:
            return MutationFailure(
                MutationFailureKind.TRANSPORT,
                f"GitHub GraphQL request timed out: {type(exc).__name__}",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return MutationFailure(
                MutationFailureKind.TRANSPORT,
                f"GitHub GraphQL network error: {exc}",
            )

        if response.status_code >= _HTTP_CLIENT_ERROR_THRESHOLD:
            return _http_failure(response)

        try:
            decoded = msgspec.json.decode(response.content, type=_AddItemResponse)
        except msgspec.DecodeError as exc:
            return MutationFailure(
                MutationFailureKind.SERIALIZATION,
                f"GitHub GraphQL response undecodable: {exc}",
                status_code=response.status_code,
            )

        return _outcome_from_response(decoded, response.status_code)


def _outcome_from_response(
    decoded: _AddItemResponse, status_code: int
) -> MutationOutcome:
    if decoded.errors:
        failure = classify_graphql_errors(decoded.errors)
        return dataclasses.replace(failure, status_code=status_code)

    payload = decoded.data.payload if decoded.data is not None else None
    item = payload.item if payload is not None else None
    if item is None or not item.id:
        return MutationFailure(
            MutationFailureKind.AMBIGUOUS,
            "GitHub returned neither an item id nor errors",
            status_code=status_code,
        )
    return MutationSuccess(item_id=item.id)
