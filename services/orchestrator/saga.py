import structlog
from shared.observability import ecomm_saga_compensation_total
from .domain import StepOutcome

logger = structlog.get_logger(__name__)


class SagaStep:
    def __init__(self, name, action, compensation=None, best_effort=False):
        self.name = name
        self.action = action
        self.compensation = compensation
        self.best_effort = best_effort


class SagaOrchestrator:
    """
    Runs steps strictly in order. A failing critical step triggers the
    compensations of the already completed steps in reverse order and the
    original error is re-raised. A failing best-effort step only records a
    failed ``StepOutcome`` in ``ctx["outcomes"]``.
    """

    def __init__(self):
        self.steps = []

    def add_step(self, name: str, action, compensation=None):
        """Builder pattern to add a step and its rollback compensation."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    def add_best_effort_step(self, name: str, action):
        self.steps.append(SagaStep(name, action, best_effort=True))
        return self

    async def execute(self, ctx: dict):
        executed_steps = []
        outcomes = ctx.setdefault("outcomes", {})
        for step in self.steps:
            if step.best_effort:
                outcomes[step.name] = await self._run_best_effort(step, ctx)
                continue
            try:
                await step.action(ctx)
            except Exception as e:
                logger.error("saga_step_failed", step=step.name, error=str(e), error_type=type(e).__name__)
                await self._rollback(executed_steps, ctx)
                raise
            executed_steps.append(step)
            outcomes[step.name] = StepOutcome(step=step.name, ok=True)
        return ctx

    async def _run_best_effort(self, step: SagaStep, ctx: dict) -> StepOutcome:
        try:
            await step.action(ctx)
        except Exception as e:
            logger.warning("saga_best_effort_step_failed", step=step.name, error=str(e))
            return StepOutcome(step=step.name, ok=False, error=e)
        return StepOutcome(step=step.name, ok=True)

    async def _rollback(self, executed_steps: list, ctx: dict):
        """Executes compensations in reverse order. Wraps each in a try/except."""
        to_compensate = [s for s in reversed(executed_steps) if s.compensation]
        if not to_compensate:
            return
        logger.info("saga_rollback_started", steps=[s.name for s in to_compensate])
        for step in to_compensate:
            try:
                await step.compensation(ctx)
                logger.info("saga_compensation_succeeded", step=step.name)
                ecomm_saga_compensation_total.labels(step_name=step.name).inc()
            except Exception as ce:
                # A failing compensation MUST NOT block other compensations
                logger.critical(
                    "saga_compensation_failed",
                    step=step.name,
                    error=str(ce),
                    action="manual intervention required",
                )
                ctx.setdefault("compensation_failures", []).append((step.name, ce))
