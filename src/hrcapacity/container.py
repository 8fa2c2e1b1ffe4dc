"""Dependency injection container for the capacity engine."""

from __future__ import annotations

from dependency_injector import containers, providers

from .pipeline import CapacityPipeline, DatasetLoader, OutputWriter, ScenarioLoader
from .schemas import EngineConfig, load_config


class CapacityContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    engine_config = providers.Singleton(EngineConfig)

    dataset_loader = providers.Singleton(DatasetLoader)
    scenario_loader = providers.Singleton(ScenarioLoader)
    writer = providers.Singleton(OutputWriter, indent=config.output.indent)

    pipeline = providers.Factory(
        CapacityPipeline,
        config=engine_config,
        loader=dataset_loader,
        scenario_loader=scenario_loader,
        writer=writer,
    )


def create_container(*, settings: dict | None = None) -> CapacityContainer:
    """Instantiate container with validated settings applied."""

    container = CapacityContainer()
    app_config = load_config(settings or {})
    container.config.from_dict(app_config.to_settings())
    container.engine_config.override(providers.Object(app_config.engine))

    return container
