"""Pages pipeline as a built-in post-receive hook"""

from gitraf.infrastructure.hooks import Hook, HookContext
from gitraf.pages.pipeline import PagesPipeline, PipelineState


class PagesHook(Hook):
    def __init__(self, pipeline: PagesPipeline, enabled: bool = True):
        super().__init__("pages", enabled=enabled)
        self.pipeline = pipeline

    async def execute(self, context: HookContext) -> None:
        results = await self.pipeline.run_events(
            context.repository, context.events, output=context.output
        )

        context.add_result(self.name, [result.to_dict() for result in results])
        for result in results:
            if result.state is PipelineState.FAILED:
                context.add_error(f"Pages deployment failed at {result.stage}: {result.reason}")
