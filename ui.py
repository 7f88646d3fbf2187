#!/usr/bin/env python3
"""
Things Vault Sync UI - Gradio interface for running imports and managing settings.
"""
import subprocess
from pathlib import Path

import gradio as gr
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from config import BOOLEAN_KEYS, DEFAULT_CONFIG, load_config, save_config, validate_config
from data_management import format_status_markdown, get_data_status
from import_cache import ImportCache
from importer import get_status
from vault import vault_from_config

CACHE_COLUMNS = ["UUID", "Imported", "Note"]

# =============================================================================
# MATRIX THEME
# =============================================================================

from gradio.themes.base import Base
from gradio.themes.utils import colors, fonts


class MatrixGreen(colors.Color):
    pass


matrix_green = MatrixGreen(
    c50="#001a00",
    c100="#003300",
    c200="#004d00",
    c300="#006600",
    c400="#008000",
    c500="#00ff00",
    c600="#00ff00",
    c700="#00ff00",
    c800="#00ff00",
    c900="#00ff00",
    c950="#00ff00",
)


class MatrixTheme(Base):
    def __init__(self):
        super().__init__(
            primary_hue=matrix_green,
            secondary_hue=matrix_green,
            neutral_hue=matrix_green,
            font=fonts.GoogleFont("Source Code Pro"),
            font_mono=fonts.GoogleFont("Source Code Pro"),
        )
        super().set(
            body_background_fill="#000000",
            body_background_fill_dark="#000000",
            body_text_color="#00ff00",
            body_text_color_dark="#00ff00",
            body_text_color_subdued="#006600",
            body_text_color_subdued_dark="#006600",

            block_background_fill="#000000",
            block_background_fill_dark="#000000",
            block_border_color="#00ff00",
            block_border_color_dark="#00ff00",
            block_label_text_color="#00ff00",
            block_label_text_color_dark="#00ff00",

            button_primary_background_fill="#003300",
            button_primary_background_fill_dark="#003300",
            button_primary_background_fill_hover="#004d00",
            button_primary_background_fill_hover_dark="#004d00",
            button_primary_text_color="#00ff00",
            button_primary_text_color_dark="#00ff00",
            button_secondary_background_fill="#000000",
            button_secondary_background_fill_dark="#000000",
            button_secondary_text_color="#00ff00",
            button_secondary_text_color_dark="#00ff00",

            input_background_fill="#000000",
            input_background_fill_dark="#000000",
            input_border_color="#00ff00",
            input_border_color_dark="#00ff00",
            input_placeholder_color="#006600",
            input_placeholder_color_dark="#006600",

            table_even_background_fill="#000000",
            table_even_background_fill_dark="#000000",
            table_odd_background_fill="#001a00",
            table_odd_background_fill_dark="#001a00",

            checkbox_background_color_selected="#00ff00",
            checkbox_background_color_selected_dark="#00ff00",
            checkbox_border_color="#00ff00",
            checkbox_border_color_dark="#00ff00",

            shadow_drop="none",
            shadow_drop_lg="none",
            background_fill_primary="#000000",
            background_fill_primary_dark="#000000",
            background_fill_secondary="#000000",
            background_fill_secondary_dark="#000000",
            color_accent="#00ff00",
            color_accent_soft="#003300",
        )


# Elements the theme variables don't reach
MATRIX_CSS = """
:root {
    color-scheme: dark !important;
}
footer {
    display: none !important;
}
.tab-nav button {
    background: #000000 !important;
    color: #00ff00 !important;
    border: 1px solid #00ff00 !important;
}
.tab-nav button.selected {
    background: #003300 !important;
}
button[role="tab"][aria-selected="true"]::after {
    background-color: #00ff00 !important;
}
input[type="checkbox"] {
    accent-color: #00ff00 !important;
}
table, thead, tbody, tr, th, td, textarea, input {
    background-color: #000000 !important;
    border-color: #00ff00 !important;
}
"""


def apply_matrix_theme(fig):
    """Apply matrix theme to a Plotly figure."""
    fig.update_layout(
        paper_bgcolor='#000000',
        plot_bgcolor='#000000',
        font=dict(color='#00ff00', family='Courier New'),
        xaxis=dict(gridcolor='#003300', linecolor='#00ff00'),
        yaxis=dict(gridcolor='#003300', linecolor='#00ff00')
    )
    return fig


# =============================================================================
# DATA LOADING FUNCTIONS
# =============================================================================

def load_cache_frame(vault) -> pd.DataFrame:
    """Import cache as a DataFrame, newest first."""
    if vault is None:
        return pd.DataFrame(columns=CACHE_COLUMNS)

    cache = ImportCache(vault)
    cache.load()
    rows = [
        [uuid, entry.imported_at, entry.file_path or "(cache only)"]
        for uuid, entry in cache.get_all().items()
    ]
    df = pd.DataFrame(rows, columns=CACHE_COLUMNS)
    return df.sort_values("Imported", ascending=False).reset_index(drop=True)


def imports_per_day(df: pd.DataFrame) -> pd.DataFrame:
    """Count cache entries per import day. Unparseable timestamps are dropped."""
    if df.empty:
        return pd.DataFrame(columns=["Day", "Imports"])
    days = pd.to_datetime(df["Imported"], errors="coerce", utc=True).dropna().dt.date
    counts = days.value_counts().sort_index()
    return pd.DataFrame({"Day": [str(d) for d in counts.index], "Imports": counts.values})


def build_imports_chart(per_day: pd.DataFrame):
    if per_day.empty:
        fig = go.Figure()
    else:
        fig = px.bar(per_day, x="Day", y="Imports", title="Imports per Day")
        fig.update_traces(marker_color='#00ff00')
    return apply_matrix_theme(fig)


def current_status_markdown() -> str:
    config = load_config()
    vault = vault_from_config(config)
    if vault is None:
        return "**No vault configured.** Set one in the Settings tab."
    return format_status_markdown(get_data_status(config, vault))


def run_importer(*args) -> str:
    """Run importer.py in a subprocess and return its output."""
    try:
        result = subprocess.run(
            ["python3", "importer.py", *args],
            capture_output=True,
            text=True,
            cwd=Path(__file__).parent
        )
        return result.stdout + result.stderr
    except OSError as e:
        return f"Error: {e}"


# =============================================================================
# IMPORT TAB
# =============================================================================

def create_import_tab():
    """Create the import control tab."""
    with gr.Tab("Import"):
        gr.Markdown("## Import Control")

        status_md = gr.Markdown()

        with gr.Row():
            import_btn = gr.Button("Import New Tasks", variant="primary")
            rebuild_btn = gr.Button("Rebuild Cache Only")
            clear_btn = gr.Button("Clear Cache")

        output_log = gr.Textbox(label="Output", lines=15, max_lines=30, interactive=False)
        last_run = gr.JSON(label="Last run")

        refresh_btn = gr.Button("Refresh Status")

        def refresh():
            return current_status_markdown(), get_status()

        def do_import():
            log = run_importer("--import")
            return (log, *refresh())

        def do_rebuild():
            log = run_importer("--rebuild-cache")
            return (log, *refresh())

        def do_clear():
            log = run_importer("--clear-cache")
            return (log, *refresh())

        outputs = [output_log, status_md, last_run]
        import_btn.click(fn=do_import, outputs=outputs)
        rebuild_btn.click(fn=do_rebuild, outputs=outputs)
        clear_btn.click(fn=do_clear, outputs=outputs)
        refresh_btn.click(fn=refresh, outputs=[status_md, last_run])

    return refresh, [status_md, last_run]


# =============================================================================
# SETTINGS TAB
# =============================================================================

TEXT_SETTINGS = [
    ("vault_path", "Vault path"),
    ("database_path", "Database file (main.sqlite)"),
    ("database_dir", "Database search folder (contains ThingsData-*)"),
    ("filter_tags", "Filter tags (comma-separated)"),
    ("filter_projects", "Filter projects (comma-separated)"),
    ("filter_areas", "Filter areas (comma-separated)"),
    ("destination_folder", "Destination folder"),
    ("custom_tags", "Custom tags (comma-separated)"),
    ("note_section_header", "Note section header"),
    ("details_section_header", "Details section header"),
    ("checklist_section_header", "Checklist section header"),
    ("imported_tag", "Things tag marking tasks imported elsewhere"),
]


def apply_settings(config: dict, values: dict) -> tuple[dict, str]:
    """
    Merge edited values into config and validate.

    Returns (updated_config, error_message); error_message is "" when valid.
    """
    updated = {**DEFAULT_CONFIG, **config}
    for key, value in values.items():
        if key in BOOLEAN_KEYS:
            updated[key] = bool(value)
        else:
            updated[key] = (value or "").strip()

    is_valid, error = validate_config(updated)
    return updated, ("" if is_valid else error)


def create_settings_tab():
    """Create the settings tab."""
    with gr.Tab("Settings"):
        gr.Markdown("## Settings")
        config = load_config()

        text_inputs = [
            gr.Textbox(label=label, value=config.get(key, ""))
            for key, label in TEXT_SETTINGS
        ]
        with gr.Row():
            bool_inputs = [
                gr.Checkbox(label="Add project as tag", value=config.get("include_project_as_tag", True)),
                gr.Checkbox(label="Add area as tag", value=config.get("include_area_as_tag", True)),
            ]

        save_btn = gr.Button("Save Settings", variant="primary")
        save_result = gr.Markdown()

        def save(*values):
            keys = [key for key, _ in TEXT_SETTINGS] + list(BOOLEAN_KEYS)
            updated, error = apply_settings(load_config(), dict(zip(keys, values)))
            if error:
                return f"**Not saved:** {error}"
            save_config(updated)
            return "Settings saved."

        save_btn.click(fn=save, inputs=text_inputs + bool_inputs, outputs=[save_result])


# =============================================================================
# CACHE TAB
# =============================================================================

def create_cache_tab():
    """Create the import cache browser tab."""
    with gr.Tab("Cache"):
        gr.Markdown("## Imported Tasks")

        search_box = gr.Textbox(label="Search note paths", placeholder="Type to search...")
        cache_table = gr.Dataframe(headers=CACHE_COLUMNS, label="", interactive=False)
        cache_chart = gr.Plot(label="Imports per Day")

        load_btn = gr.Button("Load Cache")

        def load_cache(search_term):
            df = load_cache_frame(vault_from_config(load_config()))
            chart = build_imports_chart(imports_per_day(df))
            if search_term:
                df = df[df["Note"].str.contains(search_term, case=False, regex=False)]
            return df.head(500), chart

        load_btn.click(fn=load_cache, inputs=[search_box], outputs=[cache_table, cache_chart])


# =============================================================================
# MAIN APP
# =============================================================================

def create_app():
    """Create the main Gradio app."""
    theme = MatrixTheme()
    with gr.Blocks(title="Things Vault Sync") as app:
        app.theme = theme
        gr.Markdown("# Things Vault Sync")

        import_load_fn, import_outputs = create_import_tab()
        create_settings_tab()
        create_cache_tab()

        app.load(fn=import_load_fn, outputs=import_outputs)

    return app


if __name__ == "__main__":
    app = create_app()
    app.launch(share=False, css=MATRIX_CSS)
