"""
Markdown export of test plans.
"""

from pathlib import Path
from typing import List, Union

from ..models import TestPlan, TestStep


def plan_to_markdown(plan: TestPlan) -> str:
    """Render a test plan as the Markdown document read by the test generator"""
    lines: List[str] = ["# Test Plan", "", f"**Start URL**: {plan.metadata.start_url}", ""]

    if plan.overview:
        lines.extend([plan.overview.rstrip(), ""])

    lines.extend(["## Steps to Reproduce", ""])

    for index, step in enumerate(plan.steps):
        if index == 0 and step.action == "navigate" and step.url_before == step.url_after:
            continue
        lines.extend(_render_step(step))

    return "\n".join(lines).rstrip() + "\n"


def _render_step(step: TestStep) -> List[str]:
    lines = [f"### Step {step.step_number}: {step.action.upper()}", ""]

    element = step.element
    if element is not None:
        lines.append(f"**Action:** {step.action} on element")
        if element.selector:
            lines.append(f"- **Selector**: `{element.selector}`")
        if element.id:
            lines.append(f"- **ID**: `{element.id}`")
        if element.text:
            lines.append(f'- **Text**: "{element.text}"')
        if element.href:
            lines.append(f"- **Link**: {element.href}")
        if element.shadow_path:
            lines.append(f"- **Shadow Path**: `{' > '.join(element.shadow_path)}`")
        if step.value:
            lines.append(f"- **Value**: `{step.value}`")
        lines.append("")

    if step.navigated:
        lines.append("**Expected Results:**")
        lines.append(f"- **URL**: {step.url_after}")
        if step.page_title:
            lines.append(f'- **Page Title**: "{step.page_title}"')
        if step.key_elements:
            lines.append("- **Key Elements**:")
            for key in step.key_elements:
                if not key.text:
                    continue
                label = f"<{key.tag}>" if key.tag else "Element"
                suffix = f" (id: `{key.id}`)" if key.id else ""
                lines.append(f'  - {label}: "{key.text}"{suffix}')
        if step.notable_elements:
            lines.append("- **Notable Elements**:")
            for notable in step.notable_elements:
                if notable.selector:
                    target = f"`{notable.selector}`"
                elif notable.id:
                    target = f"#{notable.id}"
                elif notable.tag:
                    target = f"<{notable.tag}>"
                else:
                    target = "element"
                text = f' "{notable.text}"' if notable.text else ""
                reason = f" - {notable.reason}" if notable.reason else ""
                lines.append(f"  - {target}{text}{reason}")
        lines.append("")

    return lines


class MarkdownExporter:
    """Writes test plans to Markdown files"""

    def render(self, plan: TestPlan) -> str:
        return plan_to_markdown(plan)

    def save(self, plan: TestPlan, output_path: Union[str, Path]) -> Path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(plan_to_markdown(plan), encoding="utf-8")
        return path
