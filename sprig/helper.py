"""
Sprig help and version renderers.

Read-only consumers of a command tree: they never mutate the command they
render, they only walk its public getters.

Palette keys
- usage-label, program-name, usage-section, version-section, description-section
- group-label, option-name, metavar, argument-description, annotation
- children-title, children-table, children, children-description
- environment-name, examples-label, examples-dot, example-name, example
- panel-title

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When the command is not colorful, styling is suppressed.
"""
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .grammar import format_argument_list
from .utils import *


def _palette():
    return defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "version-section": "bold #00E6FF",
        "description-section": "italic #A3A3A3",

        # === Options / environment ===
        "group-label": "bold #FFFFFF",
        "option-name": "bold #22C55E",
        "metavar": "bold #FFD600",
        "argument-description": "#9CA3AF",
        "annotation": "#737373",
        "environment-name": "bold #00E6FF",

        # === Children table ===
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",
        "children": "bold #36C5F0",
        "children-description": "#9CA3AF",

        # === Examples ===
        "examples-label": "bold #22C55E",
        "examples-dot": "#22C55E dim",
        "example-name": "bold #E5E7EB",
        "example": "#E5E7EB",

        # === Fancy panel ===
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))


def _text_factory(command):
    styles = _palette()

    def text(fragment, style=""):
        if not command.colorful:
            return Text(str(fragment))
        return Text(str(fragment), styles[style])

    return text


def _annotations(option):
    notes = []
    if option.required:
        notes.append("required")
    if option.collect:
        notes.append("collect")
    if option.default is not Unset and not callable(option.default):
        notes.append("default: %r" % (option.default,))
    if option.conflicts:
        notes.append("conflicts: %s" % ", ".join(option.conflicts))
    if option.depends:
        notes.append("depends: %s" % ", ".join(option.depends))
    return notes


def _section(rows, title, text, indent):
    section = Text()
    section.append(text(title, "group-label")).append(":").append("\n")
    for names, description in rows:
        section.append("  ").append(names)
        if description:
            if len(names) + 2 >= indent:
                section.append("\n").append(" " * indent)
            else:
                section.append(" " * (indent - len(names) - 2))
            section.append(description)
        section.append("\n")
    return section


def render_help(command, /):
    """
    build the help renderable for a command.

    Sections: usage, version, description, options, commands, environment
    variables and examples; empty sections are skipped.
    """
    text = _text_factory(command)
    renders = []

    usage = Text()
    usage.append(text("usage", "usage-label")).append(": ")
    usage.append(text(command.path, "program-name"))
    if command.get_options():
        usage.append(" ").append(text("[options]", "usage-section"))
    if command.arguments:
        usage.append(" ").append(text(format_argument_list(command.arguments), "usage-section"))
    if command.get_commands():
        usage.append(" ").append(text("[command]", "usage-section"))
    renders.append(usage.append("\n"))

    if (version := command.get_version()) is not Unset:
        renders.append(Text.assemble("version: ", text(version, "version-section"), "\n"))

    if command.description:
        renders.append(text(command.description, "description-section").append("\n"))

    if options := command.get_options():
        rows = []
        for option in options:
            names = Text(", ").join(text(label, "option-name") for label in option.labels)
            if option.negatable:
                names.append(", ").append(text("--no-" + option.name, "option-name"))
            if option.arguments:
                names.append(" ").append(text(format_argument_list(option.arguments), "metavar"))
            description = text(coalesce(option.description, ""), "argument-description")
            if notes := _annotations(option):
                description.append(" ").append(text("(%s)" % "; ".join(notes), "annotation"))
            rows.append((names, description))
        renders.append(_section(rows, "options", text, 28))

    if commands := command.get_commands():
        table = Table(
            "name", "help",
            title=text("commands", "children-title"),
            box=ROUNDED,
            style="" if not command.colorful else _palette()["children-table"],
            header_style="" if not command.colorful else _palette()["children-title"],
        )
        for child in commands:
            name = text(", ".join(child.names), "children")
            if child.arguments:
                name.append(" ").append(text(format_argument_list(child.arguments), "metavar"))
            table.add_row(name, text(child.short_description, "children-description"))
        renders.append(table)

    if variables := command.get_env_vars():
        rows = []
        for variable in variables:
            names = Text(", ").join(text(name, "environment-name") for name in variable.names)
            names.append(" ").append(text(format_argument_list((variable.argument,)), "metavar"))
            rows.append((names, text(coalesce(variable.description, ""), "argument-description")))
        renders.append(_section(rows, "environment variables", text, 28))

    if examples := command.get_examples():
        section = Text()
        section.append(text("examples", "examples-label")).append(":").append("\n")
        for example in examples:
            section.append(text(" • ", "examples-dot")).append(text(example.name, "example-name")).append("\n")
            for line in example.body.splitlines():
                section.append("   ").append(text(line, "example")).append("\n")
        renders.append(section)

    for render in renders:
        if isinstance(render, Text):
            render.rstrip()
    renderable = Group(*renders)

    if command.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[ ", f"{command.path} help".upper(), " ]", style="" if not command.colorful else _palette()["panel-title"]),
            title_align="left",
        )
    return renderable


def render_version(command, /):
    """build the version line: "<root name> <version>"."""
    text = _text_factory(command)
    return Text.assemble(
        text(command.root.name, "program-name"),
        " ",
        text(coalesce(command.get_version(), "unknown"), "version-section")
    )


__all__ = (
    "render_help",
    "render_version",
)
