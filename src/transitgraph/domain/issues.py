"""Issue tracking: record and deprecate data-quality findings.

An issue is bound to one or more (entity type, onestop id, attribute) pairs.
When a changeset touches a bound pair, the issue is deprecated:

* issues the changeset declared in ``issuesResolved`` are closed and stamped
  with ``resolved_by_changeset_id``,
* all others stay open and are stamped with ``superseded_by_changeset_id``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from transitgraph.domain.model import Issue, issue_types_in_category

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable

    from transitgraph.domain.model import Binding, EntityType, IssueType
    from transitgraph.domain.ports import IssueRepository

log = logging.getLogger(__name__)


class IssueTracker:
    """Issue bookkeeping for one changeset."""

    issue_types_in_category = staticmethod(issue_types_in_category)

    def __init__(
        self,
        repository: IssueRepository,
        changeset_id: int | None,
        *,
        resolved: Collection[int] = (),
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._repository = repository
        self._changeset_id = changeset_id
        self._resolved = frozenset(resolved)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._log = logger or log
        self._created: list[Issue] = []
        self._deprecated: dict[int, Issue] = {}

    @property
    def created(self) -> tuple[Issue, ...]:
        return tuple(self._created)

    @property
    def deprecated(self) -> tuple[Issue, ...]:
        return tuple(self._deprecated.values())

    @property
    def resolved_ids(self) -> frozenset[int]:
        """Ids of issues this changeset actually closed."""
        return frozenset(
            issue_id for issue_id, issue in self._deprecated.items() if not issue.open
        )

    def record(
        self,
        issue_type: IssueType,
        entities_with_attrs: Iterable[Binding],
        details: str | None = None,
    ) -> Issue:
        """Open an issue and supersede older active issues of the same type on the same entities.

        An older issue is superseded when it shares at least one bound
        (entity type, onestop id) with the new one.
        """

        bindings = list(dict.fromkeys(entities_with_attrs))
        if not bindings:
            raise ValueError("An issue needs at least one bound entity")
        wanted = frozenset(bindings)

        for existing in self._created:
            if existing.issue_type == issue_type and existing.bindings == wanted:
                return existing

        for existing in self._candidates(wanted):
            if existing.issue_type != issue_type or not existing.is_active:
                continue
            if existing.created_by_changeset_id == self._changeset_id:
                continue
            existing.supersede(self._changeset_id)
            existing.updated_at = self._clock()
            self._log.info("Superseding issue: %s", existing.as_log_dict())

        now = self._clock()
        issue = Issue(
            issue_type=issue_type,
            details=details,
            created_by_changeset_id=self._changeset_id,
            created_at=now,
            updated_at=now,
        )
        issue.bind_all(bindings)
        self._repository.add(issue)
        self._created.append(issue)
        return issue

    def deprecate(
        self, entity_type: EntityType, onestop_id: str, attribute: str
    ) -> list[Issue]:
        """Deprecate open issues bound to the touched pair.

        Issues created by this changeset, closed issues and issues already
        deprecated by this changeset are left alone, so repeated calls are no-ops.
        """

        deprecated: list[Issue] = []
        for issue in self._repository.list_bound_to(entity_type, onestop_id):
            if not issue.open or issue.created_by_changeset_id == self._changeset_id:
                continue
            if issue.id in self._deprecated:
                continue
            if not issue.is_bound_to(entity_type, onestop_id, attribute):
                continue
            if issue.id in self._resolved:
                issue.resolve(self._changeset_id)
            else:
                issue.supersede(self._changeset_id)
            issue.updated_at = self._clock()
            self._log.info("Deprecating issue: %s", issue.as_log_dict())
            if issue.id is not None:
                self._deprecated[issue.id] = issue
            deprecated.append(issue)
        return deprecated

    def reraised(self, issue_id: int) -> bool:
        """Whether this changeset opened a new issue equal in type and bindings to ``issue_id``."""

        issue = self._deprecated.get(issue_id) or self._repository.get(issue_id)
        if issue is None:
            return False
        return any(
            created.issue_type == issue.issue_type and created.bindings == issue.bindings
            for created in self._created
        )

    def _candidates(self, bindings: frozenset[Binding]) -> list[Issue]:
        seen: dict[int, Issue] = {}
        for entity_type, onestop_id, _ in bindings:
            for issue in self._repository.list_bound_to(entity_type, onestop_id):
                if issue.id is not None:
                    seen.setdefault(issue.id, issue)
        return list(seen.values())

