"""
Application Explorer

Autonomously explores a web application from a start URL and records
what it did as a replayable test plan.

Each run goes Init -> Navigate -> AnalyzeInitialPage -> Loop -> Terminate.
One loop iteration discovers interactive elements, selects one, interacts
with it and checks whether a new page was reached. The loop stops when
the navigation target or the click budget is reached, when a page offers
nothing to interact with, or when forced navigation cannot find an
unvisited page.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional

from ..brain.ai_gateway import AIGateway
from ..brain.decision_oracle import DecisionOracle, PageContext
from ..brain.element_selector import ElementSelector, Selection
from ..config import PlannerConfig
from ..core.cancellation import CancellationToken
from ..core.cookie_consent import CookieConsentHandler
from ..core.interaction_executor import InteractionExecutor, InteractionResult
from ..core.interaction_tracker import InteractionTracker
from ..core.navigation_guardrail import NavigationGuardrail
from ..core.page_loader import PageLoader
from ..core.url_tracker import NavigationTracker, normalize_url, origin_of, strip_for_start
from ..elements import InteractiveElement
from ..errors import ExplorationCancelled, FatalExplorationError
from ..generation.plan_store import PlanStore, SavedPlan
from ..generation.test_plan_synthesizer import TestPlanSynthesizer
from ..models import KeyElement, NotableElement, StepElement, TestPlan, TestStep
from .browser_session import BrowserSession
from .element_discovery import ElementDiscovery, summarize
from .page_analyzer import PageAnalyzer, PageInfo

logger = logging.getLogger(__name__)


StepCallback = Callable[[TestStep], Any]


class StopReason(Enum):
    """Why an exploration run ended"""
    NAVIGATION_TARGET = "navigation_target"
    CLICK_BUDGET = "click_budget"
    NO_ELEMENTS = "no_elements"
    ESCAPE_EXHAUSTED = "escape_exhausted"
    CANCELLED = "cancelled"
    FATAL = "fatal"


@dataclass
class ExplorationState:
    """Mutable state of one run. Created fresh by every explore() call."""
    start_url: str
    base_origin: str
    initial_url: str
    navigation: NavigationTracker = field(default_factory=NavigationTracker)
    interactions: InteractionTracker = field(default_factory=InteractionTracker)
    pages: List[PageInfo] = field(default_factory=list)
    steps: List[TestStep] = field(default_factory=list)
    total_clicks: int = 0
    navigation_count: int = 0
    consecutive_failures: int = 0
    current_info: Optional[PageInfo] = None


@dataclass
class ExplorationResult:
    """Complete result of an exploration run"""
    plan: TestPlan
    start_url: str
    base_origin: str
    stop_reason: StopReason
    total_clicks: int
    navigation_count: int
    visited_urls: List[str]
    pages: List[PageInfo]
    started_at: str
    completed_at: str
    duration_seconds: float
    saved: Optional[SavedPlan] = None

    def to_dict(self):
        return {
            "start_url": self.start_url,
            "base_origin": self.base_origin,
            "stop_reason": self.stop_reason.value,
            "total_clicks": self.total_clicks,
            "navigation_count": self.navigation_count,
            "visited_urls": self.visited_urls,
            "pages": [{"url": p.url, "title": p.title} for p in self.pages],
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_seconds": self.duration_seconds,
            "saved": {
                "json": str(self.saved.json_path),
                "markdown": str(self.saved.markdown_path),
            } if self.saved else None,
            "plan": self.plan.to_dict(),
        }


class ApplicationExplorer:
    """
    Explores a web application like a tester clicking through it.

    Features:
    - Fresh browser context per run, cookie consent dismissed on arrival
    - Heuristic or oracle-assisted element selection with de-duplication
    - Fallback interaction chains and fragment-aware navigation detection
    - Same-origin guardrail and forced navigation after repeated non-progress
    - Cooperative cancellation at every loop boundary
    - Test plan synthesis and persistence (JSON + Markdown)

    Usage:
        async with ApplicationExplorer(PlannerConfig.from_env()) as explorer:
            result = await explorer.explore("https://example.com")
    """

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        browser_session: Optional[BrowserSession] = None,
        discovery: Optional[ElementDiscovery] = None,
        analyzer: Optional[PageAnalyzer] = None,
        executor: Optional[InteractionExecutor] = None,
        oracle: Optional[DecisionOracle] = None,
        synthesizer: Optional[TestPlanSynthesizer] = None,
        plan_store: Optional[PlanStore] = None,
        on_step: Optional[StepCallback] = None
    ):
        self.config = config or PlannerConfig()
        self.session = browser_session or BrowserSession(self.config)
        self.page_loader = PageLoader(self.config)
        self.discovery = discovery or ElementDiscovery(self.config)
        self.analyzer = analyzer or PageAnalyzer()
        self.executor = executor or InteractionExecutor(self.config, self.page_loader)
        self.consent = CookieConsentHandler()
        self.synthesizer = synthesizer or TestPlanSynthesizer()
        self.plan_store = plan_store or PlanStore(self.config.output_dir)
        self.on_step = on_step

        if oracle is None and self.config.use_ai:
            gateway = AIGateway(config=self.config)
            if gateway.is_configured():
                oracle = DecisionOracle(gateway, self.config)
            else:
                logger.warning(
                    f"[EXPLORER] AI provider '{gateway.provider.value}' has no credentials, "
                    f"using heuristic selection"
                )
        self.oracle = oracle

    async def __aenter__(self) -> "ApplicationExplorer":
        await self.session.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self.session.close()

    # ==================== Run ====================

    async def explore(
        self,
        start_url: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> ExplorationResult:
        """
        Explore the application at start_url.

        Raises:
            ExplorationCancelled: the token fired; the plan so far is persisted
            FatalExplorationError: the run could not start or broke off; carries the partial plan path
        """
        token = cancel_token or CancellationToken()
        started = datetime.now(timezone.utc)
        state = ExplorationState(
            start_url=start_url,
            base_origin=origin_of(start_url),
            initial_url=strip_for_start(start_url),
            interactions=InteractionTracker(self.config.interaction_history_size),
        )
        guardrail = NavigationGuardrail(state.base_origin, state.initial_url, self.config, self.page_loader)
        selector = ElementSelector(state.base_origin, state.initial_url, self.config, oracle=self.oracle)

        logger.info(f"[EXPLORER] Starting exploration of {start_url} (origin {state.base_origin})")
        logger.info(
            f"[EXPLORER] Targets: {self.config.max_navigations} navigations, "
            f"{self.config.max_clicks} clicks, AI={'on' if selector.oracle_enabled else 'off'}"
        )

        try:
            _, page = await self.session.new_page(start_url)
        except Exception as e:
            raise self._fatal(state, f"Could not open a browser context: {e}") from e

        try:
            token.raise_if_cancelled("navigate")
            await self._navigate_to_start(page, state)
            await self._analyze_initial_page(page, state, token)
            stop_reason = await self._run_loop(page, state, selector, guardrail, token)
        except ExplorationCancelled as e:
            logger.info(f"[EXPLORER] Cancelled at {e.stage or 'unknown stage'} after {state.total_clicks} clicks")
            self._persist(state, StopReason.CANCELLED, partial=True)
            raise
        except FatalExplorationError:
            raise
        except Exception as e:
            raise self._fatal(state, f"Exploration aborted: {e}") from e
        finally:
            await self.session.close_context()
            self._log_oracle_stats()

        completed = datetime.now(timezone.utc)
        plan = self._synthesize(state, stop_reason, partial=False)
        saved = self._save(plan)

        logger.info(
            f"[EXPLORER] Finished ({stop_reason.value}): {state.navigation_count} navigations, "
            f"{state.total_clicks} clicks, {len(state.navigation)} pages visited"
        )
        return ExplorationResult(
            plan=plan,
            start_url=start_url,
            base_origin=state.base_origin,
            stop_reason=stop_reason,
            total_clicks=state.total_clicks,
            navigation_count=state.navigation_count,
            visited_urls=state.navigation.visit_order,
            pages=list(state.pages),
            started_at=started.isoformat(),
            completed_at=completed.isoformat(),
            duration_seconds=(completed - started).total_seconds(),
            saved=saved,
        )

    # ==================== Setup ====================

    async def _navigate_to_start(self, page, state: ExplorationState):
        try:
            await page.goto(
                state.initial_url,
                wait_until="domcontentloaded",
                timeout=self.config.page_load_timeout_ms,
            )
        except Exception as e:
            raise self._fatal(state, f"Initial navigation to {state.initial_url} failed: {e}")

        await self.page_loader.wait_until_ready(page)

        landed_origin = origin_of(page.url)
        if landed_origin != state.base_origin:
            raise self._fatal(
                state,
                f"Initial navigation left the target origin: landed on {page.url} "
                f"(expected {state.base_origin})",
            )

        state.navigation.visit_url(state.initial_url)
        await self.consent.dismiss(page)

    async def _analyze_initial_page(self, page, state: ExplorationState, token: CancellationToken):
        info = await self.analyzer.analyze(page)
        if info.is_empty:
            logger.info(f"[EXPLORER] Initial page looks empty, retrying in {self.config.empty_page_retry_ms}ms")
            await token.sleep(self.config.empty_page_retry_ms, "analyze")
            await self.page_loader.wait_for_network_idle(page)
            info = await self.analyzer.analyze(page)

        state.pages.append(info)
        state.current_info = info
        await self._record_step(
            page,
            state,
            action="navigate",
            url_before=state.start_url,
            url_after=page.url,
            navigated=True,
            info=info,
            method="start",
        )

    # ==================== Main Loop ====================

    async def _run_loop(
        self,
        page,
        state: ExplorationState,
        selector: ElementSelector,
        guardrail: NavigationGuardrail,
        token: CancellationToken
    ) -> StopReason:
        config = self.config

        while state.navigation_count < config.max_navigations and state.total_clicks < config.max_clicks:
            token.raise_if_cancelled("iteration")

            elements = await self._discover(page, state, token)
            if not elements:
                logger.warning(f"[EXPLORER] No interactive elements on {page.url}, stopping")
                return StopReason.NO_ELEMENTS

            selection = await selector.select(
                elements,
                state.navigation.visited,
                config.max_navigations,
                state.interactions,
                await self._page_context(page, state) if selector.oracle_enabled else None,
                state.navigation_count,
            )
            if selection is None:
                return StopReason.NO_ELEMENTS

            state.interactions.remember(selection.element)
            url_before = page.url
            logger.info(
                f"[EXPLORER] Click {state.total_clicks + 1}/{config.max_clicks}: "
                f"{selection.element.kind.value} '{selection.element.label[:50]}' ({selection.method})"
            )

            result = await self.executor.interact(page, selection.element, selection.action, selection.value)
            state.total_clicks += 1

            token.raise_if_cancelled("interaction")
            await self.page_loader.wait_for_navigation(page)
            url_after = page.url
            await guardrail.ensure_same_origin(page)

            check = state.navigation.check(url_before, page.url)
            if check.is_new_page:
                state.navigation_count += 1
                state.navigation.visit(check.url_key)
                state.consecutive_failures = 0
                logger.info(
                    f"[EXPLORER] New page {state.navigation_count}/{config.max_navigations}: {check.url_key}"
                )
                info = await self._analyze_new_page(page, state)
                await self._record_interaction(page, state, selection, result, url_before, url_after, True, info)
                continue

            state.consecutive_failures += 1
            navigated = check.url_changed
            info = await self.analyzer.analyze(page) if navigated else None
            await self._record_interaction(page, state, selection, result, url_before, url_after, navigated, info)
            logger.debug(
                f"[EXPLORER] No new page ({state.consecutive_failures}/{config.max_consecutive_failures} "
                f"consecutive failures)"
            )

            if state.consecutive_failures >= config.max_consecutive_failures:
                if not await self._escape(page, state, guardrail, token):
                    return StopReason.ESCAPE_EXHAUSTED

        if state.navigation_count >= config.max_navigations:
            return StopReason.NAVIGATION_TARGET
        return StopReason.CLICK_BUDGET

    async def _discover(self, page, state: ExplorationState, token: CancellationToken) -> List[InteractiveElement]:
        await self.consent.dismiss(page)
        elements = await self.discovery.discover(page, state.base_origin)
        if elements:
            logger.debug(f"[EXPLORER] Discovered {len(elements)} elements: {summarize(elements)}")
            return elements

        logger.info(f"[EXPLORER] Nothing found on {page.url}, retrying in {self.config.empty_page_retry_ms}ms")
        await token.sleep(self.config.empty_page_retry_ms, "discover")
        await self.page_loader.wait_for_network_idle(page)
        return await self.discovery.discover(page, state.base_origin)

    async def _escape(
        self,
        page,
        state: ExplorationState,
        guardrail: NavigationGuardrail,
        token: CancellationToken
    ) -> bool:
        """Force navigation to an unvisited page after repeated non-progress"""
        logger.warning(
            f"[EXPLORER] {state.consecutive_failures} interactions without a new page, forcing navigation"
        )
        url_before = page.url
        reached = await guardrail.force_new_page(page, state.navigation.visited)
        token.raise_if_cancelled("escape")
        if reached is None:
            logger.warning("[EXPLORER] Forced navigation found no unvisited page")
            return False

        state.consecutive_failures = 0
        state.navigation.visit(reached)
        if state.navigation_count < self.config.max_navigations:
            state.navigation_count += 1

        info = await self._analyze_new_page(page, state)
        await self._record_step(
            page,
            state,
            action="navigate",
            url_before=url_before,
            url_after=page.url,
            navigated=True,
            info=info,
            method="forced navigation",
        )
        return True

    async def _analyze_new_page(self, page, state: ExplorationState) -> PageInfo:
        await self.consent.dismiss(page)
        info = await self.analyzer.analyze(page)
        state.pages.append(info)
        state.current_info = info
        return info

    async def _page_context(self, page, state: ExplorationState) -> PageContext:
        try:
            title = await page.title()
        except Exception as e:
            logger.debug(f"[EXPLORER] Could not read page title: {e}")
            title = ""

        headings: List[str] = []
        info = state.current_info
        if info is not None and normalize_url(info.url) == normalize_url(page.url):
            headings = info.heading_texts
            title = title or info.title
        return PageContext(url=page.url, title=title, headings=headings)

    # ==================== Step Recording ====================

    async def _record_interaction(
        self,
        page,
        state: ExplorationState,
        selection: Selection,
        result: InteractionResult,
        url_before: str,
        url_after: str,
        navigated: bool,
        info: Optional[PageInfo]
    ):
        await self._record_step(
            page,
            state,
            action=result.action,
            url_before=url_before,
            url_after=url_after,
            navigated=navigated,
            info=info,
            element=selection.element,
            value=result.value,
            method=selection.method,
            reasoning=selection.reasoning,
        )

    async def _record_step(
        self,
        page,
        state: ExplorationState,
        action: str,
        url_before: str,
        url_after: str,
        navigated: bool,
        info: Optional[PageInfo] = None,
        element: Optional[InteractiveElement] = None,
        value: Optional[str] = None,
        method: Optional[str] = None,
        reasoning: Optional[str] = None
    ) -> TestStep:
        page_title = None
        key_elements: Optional[List[KeyElement]] = None
        notable_elements: Optional[List[NotableElement]] = None

        if navigated and info is not None:
            page_title = info.title or None
            key_elements = self.analyzer.key_elements(info) or None
            notable_elements = await self._notable_elements(page, info) or None

        step = TestStep(
            step_number=len(state.steps) + 1,
            action=action,
            element=step_element(element) if element is not None else None,
            url_before=url_before,
            url_after=url_after,
            navigated=navigated,
            value=value,
            timestamp=datetime.now(timezone.utc).isoformat(),
            page_title=page_title,
            key_elements=key_elements,
            notable_elements=notable_elements,
            method=method,
            reasoning=reasoning or None,
        )
        state.steps.append(step)
        await self._notify(step)
        return step

    async def _notable_elements(self, page, info: PageInfo) -> List[NotableElement]:
        if not (self.config.use_ai and self.config.collect_notable_elements and self.oracle is not None):
            return []
        candidates = await self.analyzer.collect_notable_candidates(page)
        try:
            return await self.oracle.identify_notable_elements(candidates, info.title, info.url)
        except Exception as e:
            logger.warning(f"[EXPLORER] Notable element collection failed: {e}")
            return []

    async def _notify(self, step: TestStep):
        if self.on_step is None:
            return
        try:
            outcome = self.on_step(step)
            if inspect.isawaitable(outcome):
                await outcome
        except ExplorationCancelled:
            raise
        except Exception as e:
            logger.warning(f"[EXPLORER] Step callback failed: {e}")

    # ==================== Termination ====================

    def _synthesize(self, state: ExplorationState, stop_reason: StopReason, partial: bool) -> TestPlan:
        return self.synthesizer.synthesize(
            start_url=state.start_url,
            pages=state.pages,
            steps=state.steps,
            base_origin=state.base_origin,
            total_clicks=state.total_clicks,
            navigation_count=state.navigation_count,
            stop_reason=stop_reason.value,
            partial=partial,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )

    def _save(self, plan: TestPlan) -> Optional[SavedPlan]:
        try:
            return self.plan_store.save(plan)
        except OSError as e:
            logger.error(f"[EXPLORER] Could not save test plan: {e}")
            return None

    def _persist(self, state: ExplorationState, stop_reason: StopReason, partial: bool) -> Optional[SavedPlan]:
        return self._save(self._synthesize(state, stop_reason, partial))

    def _log_oracle_stats(self):
        if self.oracle is None or not self.config.use_ai:
            return
        stats = self.oracle.get_stats()
        logger.info(
            f"[EXPLORER] Oracle usage: {stats.get('total_requests', 0)} requests, "
            f"{stats.get('failed_requests', 0)} failed, {stats.get('total_tokens', 0)} tokens"
        )

    def _fatal(self, state: ExplorationState, message: str) -> FatalExplorationError:
        logger.error(f"[EXPLORER] {message}")
        saved = self._persist(state, StopReason.FATAL, partial=True)
        return FatalExplorationError(message, str(saved.json_path) if saved else None)


def step_element(element: InteractiveElement) -> StepElement:
    """The recorded form of an interacted element"""
    return StepElement(
        tag=element.tag or None,
        selector=element.selector or None,
        text=element.text or None,
        href=element.href,
        id=element.stable_id,
        aria_label=element.accessible_name,
        role=element.role,
        kind=element.kind.value,
        shadow_path=list(element.shadow_path) or None,
        is_in_shadow_dom=element.in_shadow_dom,
    )
