"""SketchGraph semantic extraction engine."""

from sketchgraph.engine.config import ExtractionOptions, PipelineConfig
from sketchgraph.engine.context import PipelineContext
from sketchgraph.engine.pipeline import Pipeline, PipelineError, create_pipeline, run_extraction
from sketchgraph.engine.registry import Layer, get_registry, transform

__all__ = [
    "transform",
    "Layer",
    "get_registry",
    "PipelineContext",
    "Pipeline",
    "PipelineError",
    "ExtractionOptions",
    "PipelineConfig",
    "create_pipeline",
    "run_extraction",
]
