"""
Stateful selection session behind the create-order form.

The session holds the four composition inputs (policy, cluster, action
type, location checks) and recomputes the full group list with
``compose`` whenever any of them changes. Collaborator failures are
reported through the ``notify`` callback and never leave the session in
a half-updated state.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Union

from ..core.errors import PortalServiceError
from ..schemas.policy import LOCATION_KEYS, ActionType, ClusterContext, LocationChecks, MatchingPolicy
from ..schemas.query import DeviceSearchPage, FilterGroup
from .composer import compose
from .labels import generate_query_summary, normalize_action, render_chips
from .policy_resolver import default_location_checks, resolve_policy

logger = logging.getLogger("session")

Notify = Callable[[str, str], None]

NO_POLICY_MESSAGE = "No matching policy found, use manual filters"

_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


def log_notify(level: str, message: str) -> None:
    logger.log(_LEVELS.get(level, logging.INFO), message)


class MatchingSession:
    def __init__(
        self,
        policy_client=None,
        template_client=None,
        search_client=None,
        *,
        notify: Optional[Notify] = None,
        field_labels: Optional[Dict[str, str]] = None,
    ) -> None:
        self.policy_client = policy_client
        self.template_client = template_client
        self.search_client = search_client
        self.notify = notify or log_notify
        self.field_labels = dict(field_labels or {})

        self._lock = threading.Lock()
        self._policy: Optional[MatchingPolicy] = None
        self._cluster: Optional[ClusterContext] = None
        self._action: Optional[ActionType] = None
        self._checks = LocationChecks()
        self._groups: List[FilterGroup] = []
        self._generation = 0
        self.last_page: Optional[DeviceSearchPage] = None

    # Read-only views

    @property
    def policy(self) -> Optional[MatchingPolicy]:
        with self._lock:
            return self._policy

    @property
    def checks(self) -> LocationChecks:
        with self._lock:
            return self._checks.model_copy()

    @property
    def groups(self) -> List[FilterGroup]:
        with self._lock:
            return [group.model_copy(deep=True) for group in self._groups]

    @property
    def chips(self) -> List[List[str]]:
        with self._lock:
            return render_chips(self._groups, self._action, self.field_labels)

    @property
    def summary(self) -> str:
        with self._lock:
            return generate_query_summary(self._groups)

    def _recompute(self) -> None:
        # Caller holds the lock.
        self._groups = compose(self._policy, self._cluster, self._action, self._checks, self.field_labels)

    # Inputs

    def refresh_field_labels(self) -> Dict[str, str]:
        if self.search_client is None:
            return dict(self.field_labels)
        try:
            labels = self.search_client.filter_options()
        except PortalServiceError as exc:
            logger.warning("Filter options unavailable; using raw field names: %s", exc)
            return dict(self.field_labels)
        with self._lock:
            self.field_labels = dict(labels)
            self._recompute()
        return dict(labels)

    def load_policies(
        self,
        resource_pool_type: Optional[str],
        action_type: Union[ActionType, str, None],
    ) -> Optional[MatchingPolicy]:
        """Fetch policies for the pool type and action, then select the match."""
        action = normalize_action(action_type)
        with self._lock:
            self._action = action
        policy = None
        if resource_pool_type and action is not None and self.policy_client is not None:
            try:
                policies = self.policy_client.list_by_type(resource_pool_type, action)
            except PortalServiceError as exc:
                logger.warning("Policy lookup failed for %s/%s: %s", resource_pool_type, action.value, exc)
                self.notify("error", f"Failed to load matching policies: {exc.detail}")
                policies = []
            policy = resolve_policy(resource_pool_type, action, policies)
        if policy is None:
            self.notify("info", NO_POLICY_MESSAGE)
        return self.select_policy(policy)

    def select_policy(self, policy: Optional[MatchingPolicy]) -> Optional[MatchingPolicy]:
        if policy is not None:
            policy = self._with_template(policy)
        with self._lock:
            self._policy = policy
            self._checks = default_location_checks(policy, self._action)
            self._recompute()
        return policy

    def _with_template(self, policy: MatchingPolicy) -> MatchingPolicy:
        if policy.template_groups() or not policy.query_template_id or self.template_client is None:
            return policy
        try:
            template = self.template_client.get(policy.query_template_id)
        except PortalServiceError as exc:
            logger.warning("Template %s failed to load: %s", policy.query_template_id, exc)
            self.notify("error", f"Failed to load query template: {exc.detail}")
            self.notify("info", NO_POLICY_MESSAGE)
            return policy
        return policy.model_copy(update={"query_template": template})

    def select_cluster(self, cluster: Optional[ClusterContext]) -> None:
        with self._lock:
            self._cluster = cluster
            self._recompute()

    def select_action_type(self, action_type: Union[ActionType, str, None]) -> None:
        with self._lock:
            self._action = normalize_action(action_type)
            self._checks = default_location_checks(self._policy, self._action)
            self._recompute()

    def set_check(self, name: str, value: bool) -> None:
        if name not in LOCATION_KEYS:
            raise ValueError(f"unknown location check: {name}")
        with self._lock:
            self._checks = self._checks.model_copy(update={name: bool(value)})
            self._recompute()

    def set_checks(self, checks: LocationChecks) -> None:
        with self._lock:
            self._checks = checks.model_copy()
            self._recompute()

    # Search

    def search(self, page: int = 1, size: int = 10) -> Optional[DeviceSearchPage]:
        """Run device search on the current groups; only the latest call's page is kept.

        Returns ``None`` when the search fails or a newer search was started
        before this one finished. Groups are left untouched either way.
        """
        if self.search_client is None:
            raise RuntimeError("search client is not configured")
        with self._lock:
            self._generation += 1
            generation = self._generation
            groups = [group.model_copy(deep=True) for group in self._groups]
        try:
            result = self.search_client.search(groups, page, size)
        except PortalServiceError as exc:
            with self._lock:
                stale = generation != self._generation
            if stale:
                logger.info("Ignoring failure of stale search generation=%s: %s", generation, exc)
                return None
            logger.warning("Device search failed (generation=%s): %s", generation, exc)
            self.notify("error", f"Device search failed: {exc.detail}")
            return None
        with self._lock:
            if generation != self._generation:
                logger.info("Discarding stale search result generation=%s latest=%s", generation, self._generation)
                return None
            self.last_page = result
        return result
