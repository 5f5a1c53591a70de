"""
irtt-telegraf - irtt results as telegraf metrics

Projects the statistics of a finished irtt test into JSON documents or
InfluxDB line protocol for telegraf's exec and file inputs.
"""

__version__ = "1.0.0"


# Lazy imports keep `import irtt_telegraf` cheap for the CLI
def __getattr__(name):
    """Lazy loading of package components to avoid unnecessary imports."""
    if name in ("export_result", "export_error", "TelegrafExporter", "MissingStatsError"):
        from . import exporter

        return getattr(exporter, name)
    elif name in ("TelegrafOptions", "OutputFormat", "JSONShape", "default_options"):
        from . import options

        return getattr(options, name)
    elif name in ("Result", "ResultStats", "ResultConfig", "DurationStats"):
        from . import models

        return getattr(models, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


# Define the public API of the package
__all__ = [
    "export_result",
    "export_error",
    "TelegrafExporter",
    "MissingStatsError",
    "TelegrafOptions",
    "OutputFormat",
    "JSONShape",
    "default_options",
    "Result",
    "ResultStats",
    "ResultConfig",
    "DurationStats",
    "__version__",
]
