"""Cost template domain service."""

from collections import defaultdict
from decimal import Decimal
from typing import Any, Optional

from profitrack.database.base import Database
from profitrack.domain.entities import CostTemplate, TemplateUsage, TemplateVariance
from profitrack.domain.errors import (
    NotFoundError,
    ValidationError,
    job_not_found,
    template_not_found,
)
from profitrack.utils.money import percent_of


class TemplateService:
    """Service for cost templates and their usage on jobs."""

    def __init__(self, db: Database):
        """Initialize template service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_template(
        self,
        name: str,
        template_type: str,
        estimated_materials_cost: Decimal = Decimal("0"),
        estimated_labor_cost: Decimal = Decimal("0"),
        estimated_overhead_cost: Decimal = Decimal("0"),
        target_sale_price: Optional[Decimal] = None,
        target_margin: Optional[Decimal] = None,
    ) -> int:
        """Create a cost template.

        Args:
            name: Unique template name
            template_type: Type tag, e.g. "wedding" or "installation"
            estimated_materials_cost: Estimated materials cost
            estimated_labor_cost: Estimated labor cost
            estimated_overhead_cost: Estimated overhead cost
            target_sale_price: Optional target sale price
            target_margin: Optional target margin percentage

        Returns:
            Template ID

        Raises:
            ValidationError: If the name is empty or taken, or a cost is negative
        """
        if not name or not name.strip():
            raise ValidationError("Template name is required")
        name = name.strip()
        for cost in (estimated_materials_cost, estimated_labor_cost, estimated_overhead_cost):
            if cost < 0:
                raise ValidationError(f"Estimated costs must not be negative, got {cost}")
        if any(t.name == name for t in self.db.list_cost_templates()):
            raise ValidationError(f"Cost template '{name}' already exists")

        return self.db.create_cost_template(
            name=name,
            template_type=template_type,
            estimated_materials_cost=estimated_materials_cost,
            estimated_labor_cost=estimated_labor_cost,
            estimated_overhead_cost=estimated_overhead_cost,
            target_sale_price=target_sale_price,
            target_margin=target_margin,
        )

    def get_template(self, template_id: int) -> CostTemplate:
        """Get template by ID.

        Raises:
            NotFoundError: If the template doesn't exist
        """
        template = self.db.get_cost_template(template_id)
        if template is None:
            raise NotFoundError(template_not_found(template_id))
        return template

    def list_templates(self) -> list[CostTemplate]:
        return self.db.list_cost_templates()

    def estimate_actuals(self, template_id: int) -> dict[str, Any]:
        """Usage fields that copy a template's estimate as the actuals."""
        template = self.get_template(template_id)
        return {
            "template_id": template.id,
            "actual_materials_cost": template.estimated_materials_cost,
            "actual_labor_cost": template.estimated_labor_cost,
            "actual_overhead_cost": template.estimated_overhead_cost,
            "actual_sale_price": template.target_sale_price,
        }

    def use_template(
        self,
        job_id: int,
        template_id: int,
        actual_materials_cost: Optional[Decimal] = None,
        actual_labor_cost: Optional[Decimal] = None,
        actual_overhead_cost: Optional[Decimal] = None,
        actual_sale_price: Optional[Decimal] = None,
    ) -> int:
        """Apply a template to a job.

        Actuals that are not given default to the template's estimate.

        Returns:
            Usage ID

        Raises:
            NotFoundError: If the job or template doesn't exist
            ValidationError: If an actual cost is negative
        """
        if self.db.get_job(job_id) is None:
            raise NotFoundError(job_not_found(job_id))
        fields = self.estimate_actuals(template_id)

        overrides = {
            "actual_materials_cost": actual_materials_cost,
            "actual_labor_cost": actual_labor_cost,
            "actual_overhead_cost": actual_overhead_cost,
            "actual_sale_price": actual_sale_price,
        }
        for key, value in overrides.items():
            if value is None:
                continue
            if value < 0:
                raise ValidationError(f"Actual costs must not be negative, got {value}")
            fields[key] = value

        return self.db.create_template_usage(job_id=job_id, **fields)

    def usages(self, template_id: Optional[int] = None) -> list[TemplateUsage]:
        return self.db.list_template_usages(template_id=template_id)

    def variance_report(self, template_id: Optional[int] = None) -> list[TemplateVariance]:
        """Compare each template's estimate with the actuals of its usages.

        Only templates that have been used are reported, sorted by name.

        Raises:
            NotFoundError: If template_id is given and doesn't exist
        """
        if template_id is not None:
            templates = [self.get_template(template_id)]
        else:
            templates = self.list_templates()

        usages_by_template: dict[int, list[TemplateUsage]] = defaultdict(list)
        for usage in self.db.list_template_usages(template_id=template_id):
            usages_by_template[usage.template_id].append(usage)

        report = []
        for template in templates:
            usages = usages_by_template.get(template.id)
            if not usages:
                continue
            estimate = template.estimated_total
            actuals = [usage.actual_total for usage in usages]
            variances = [actual - estimate for actual in actuals]
            count = len(usages)
            report.append(
                TemplateVariance(
                    template_id=template.id,
                    template_name=template.name,
                    usage_count=count,
                    estimated_total=estimate,
                    average_actual_total=sum(actuals, Decimal("0")) / count,
                    average_variance=sum(variances, Decimal("0")) / count,
                    average_variance_percentage=sum(
                        (percent_of(v, estimate) for v in variances), Decimal("0")
                    ) / count,
                )
            )
        return report
