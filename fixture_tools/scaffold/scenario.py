"""
================================================================================
Scenario Scaffold Generator
================================================================================

Renders the skeleton of a new scenario test for a given actor class.

Settings:
    - class_name (required): actor class instantiated by the scenario
    - namespace (optional): namespace the actor lives in; trailing
      backslashes are stripped

Usage:
    from fixture_tools.scaffold import ScenarioScaffold

    text = ScenarioScaffold({"class_name": "Tester",
                             "namespace": "App\\\\Acceptance\\\\"}).produce()

================================================================================
"""

from pathlib import Path
from typing import Any, Mapping, Union

from loguru import logger

from .template import Template


class ScenarioScaffold:
    """
    Produces scenario stub text from scaffold settings.
    """

    template = (
        "<?php {{use}}\n"
        "$I = new {{actor}}($scenario);\n"
        "$I->wantTo('perform actions and see result');\n"
    )

    def __init__(self, settings: Mapping[str, Any]):
        self.settings = settings

    def produce(self) -> str:
        actor = self.settings["class_name"]
        use = ""
        namespace = self.settings.get("namespace")
        if namespace:
            namespace = namespace.rstrip("\\")
            use = f"use {namespace}\\{actor};"

        return (
            Template(self.template)
            .place("actor", actor)
            .place("use", use)
            .produce()
        )

    def save(self, path: Union[str, Path], force: bool = False) -> Path:
        """
        Writes the rendered stub to ``path``.

        Raises:
            FileExistsError: if the file exists and ``force`` is False.
        """
        path = Path(path)
        if path.exists() and not force:
            raise FileExistsError(f"Scenario file already exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.produce(), encoding="utf-8")
        logger.info(f"Scenario stub written to {path}")
        return path


# ============================================================
# CLI Interface
# ============================================================

def main(argv=None):
    """
    CLI entry point for scenario generation.
    """
    import argparse

    parser = argparse.ArgumentParser(description="Generate a scenario test stub")
    parser.add_argument("class_name", help="Actor class used by the scenario")
    parser.add_argument("--namespace", default="", help="Namespace of the actor class")
    parser.add_argument("--output", "-o", help="File to write (prints to stdout if omitted)")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    args = parser.parse_args(argv)

    scaffold = ScenarioScaffold({"class_name": args.class_name, "namespace": args.namespace})
    if args.output:
        scaffold.save(args.output, force=args.force)
    else:
        print(scaffold.produce(), end="")


if __name__ == "__main__":
    main()


__all__ = ["ScenarioScaffold", "main"]
