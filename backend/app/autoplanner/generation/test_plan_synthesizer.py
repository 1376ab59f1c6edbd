"""
Test Plan Synthesizer

Turns the pages analyzed and the steps recorded during exploration into
an immutable TestPlan. Pure: no I/O, same inputs give the same plan.
"""

from typing import TYPE_CHECKING, Optional, Sequence

from ..models import PlanMetadata, TestPlan, TestStep

if TYPE_CHECKING:
    from ..explorer.page_analyzer import PageInfo


class TestPlanSynthesizer:
    """Builds the overview and the ordered step list of a test plan"""
    __test__ = False

    def generate_overview(self, pages: Sequence["PageInfo"]) -> str:
        if not pages:
            return "No pages were explored."

        first = pages[0]
        name = first.title or first.url
        lines = [
            f"The {name} application provides the following functionality:",
            "",
            f"**Explored Pages:** {len(pages)} page(s) were analyzed during exploration.",
            "",
        ]

        total_forms = sum(len(p.forms) for p in pages)
        total_buttons = sum(len(p.buttons) for p in pages)
        total_links = sum(len(p.links) for p in pages)
        total_inputs = sum(len(p.inputs) for p in pages)

        if total_forms:
            lines.append(
                f"- **Form Management**: {total_forms} form(s) with input fields for data entry "
                f"across {len(pages)} page(s)"
            )
        if total_buttons:
            lines.append(f"- **Interactive Elements**: {total_buttons} button(s) for user interactions")
        if total_links:
            lines.append(f"- **Navigation**: {total_links} link(s) for page navigation")
        if total_inputs:
            lines.append(f"- **Input Fields**: {total_inputs} input field(s) for user data entry")

        if len(pages) > 1:
            lines.append("")
            lines.append("**Pages Explored:**")
            for index, page in enumerate(pages, start=1):
                lines.append(f"{index}. {page.title or 'Untitled'} ({page.url})")

        return "\n".join(lines).rstrip() + "\n"

    def synthesize(
        self,
        start_url: str,
        pages: Sequence["PageInfo"],
        steps: Sequence[TestStep],
        base_origin: Optional[str] = None,
        total_clicks: Optional[int] = None,
        navigation_count: Optional[int] = None,
        stop_reason: Optional[str] = None,
        partial: bool = False,
        generated_at: Optional[str] = None
    ) -> TestPlan:
        ordered = []
        for number, step in enumerate(steps, start=1):
            update = {"step_number": number}
            if not step.navigated:
                update.update(page_title=None, key_elements=None, notable_elements=None)
            ordered.append(step.model_copy(update=update))

        return TestPlan(
            metadata=PlanMetadata(
                start_url=start_url,
                base_origin=base_origin,
                generated_at=generated_at,
                total_clicks=total_clicks,
                navigation_count=navigation_count,
                stop_reason=stop_reason,
                partial=partial,
            ),
            overview=self.generate_overview(pages),
            steps=ordered,
        )
