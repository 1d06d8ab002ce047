# jsx-to-html Runtime Sources
"""
JavaScript sources that get injected into transformed and sandboxed modules.

These are real .js/.mjs files so editors can check them, but they are read
and filled in as templates at transform and render time.
"""

import json
import os
from string import Template

# Names under which a transformed entry exports its render output
MARKUP_EXPORT = "renderedMarkup"
SCRIPTS_EXPORT = "scriptDependencies"
STYLES_EXPORT = "styleDependencies"

RUNNER_FILE = "__jsx_to_html_runner.mjs"


def _read(name):
    path = os.path.join(os.path.dirname(__file__), name)
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def get_render_header(create_element_module="react", render_module="react-dom/server"):
    """Imports binding the rendering library's two entry points; prepended in the sandbox."""
    return Template(_read('header.js')).substitute(
        create_element_module=json.dumps(create_element_module),
        render_module=json.dumps(render_module),
    )


def get_render_footer(component, script_ids, style_ids):
    """
    Export block appended to an entry at transform time.

    The render call runs when the compiled module is executed, never while
    the bundler transforms it.
    """
    return Template(_read('footer.js')).substitute(
        component=component,
        scripts=json.dumps(list(script_ids)),
        styles=json.dumps(list(style_ids)),
        markup_export=MARKUP_EXPORT,
        scripts_export=SCRIPTS_EXPORT,
        styles_export=STYLES_EXPORT,
    )


def get_runner():
    """Source of the node-side module runner."""
    return _read('runner.mjs')
