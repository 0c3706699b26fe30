"""
Main Streamlit application for CrudForm.
Schema-driven form playground: renders a CrudForm, extracts and validates
submissions and shows the resulting insert or update request.
"""

import json
import logging

import streamlit as st

from crudform.config_loader import load_config, configure_logging, get_config_value, get_form_options
from crudform.crud_form import UPDATE
from crudform.diff_utils import changed_update_instruction
from crudform.exceptions import CrudFormError, log_error_with_context
from crudform.schema_loader import get_configured_form
from crudform.streamlit_form import render_streamlit_form

# Configure logging dynamically from config
config = load_config()
try:
    configure_logging(config)
    logger = logging.getLogger(__name__)
except Exception as e:
    # Fallback to INFO if config reading fails
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)
    logger.error(f"Failed to configure logging from config: {e}, using INFO level")

app_name = get_config_value(config, 'app', 'name', 'CrudForm')
logger.info(f"Starting {app_name} version: {get_config_value(config, 'app', 'version', 'Unknown')}")

# Page configuration
st.set_page_config(
    page_title=app_name,
    page_icon="📋",
    layout="wide",
    initial_sidebar_state="expanded"
)

DEFAULT_USER = "operator"


def init_session_state():
    """Initialize session state variables."""
    if 'edit_document' not in st.session_state:
        st.session_state.edit_document = None
    if 'edit_id' not in st.session_state:
        st.session_state.edit_id = None
    if 'last_submission' not in st.session_state:
        st.session_state.last_submission = None
    if 'last_elements' not in st.session_state:
        st.session_state.last_elements = []


def render_sidebar():
    """Sidebar controls for switching between new and edit mode."""
    with st.sidebar:
        st.header("Document")
        raw_document = st.text_area(
            "Existing document (JSON)",
            value="",
            help="Leave empty to create a new document"
        )

        if not raw_document.strip():
            st.session_state.edit_document = None
            st.session_state.edit_id = None
            return

        try:
            document = json.loads(raw_document)
        except json.JSONDecodeError as e:
            st.error(f"Invalid JSON: {e}")
            return

        if not isinstance(document, dict):
            st.error("Document must be a JSON object")
            return

        st.session_state.edit_document = document
        st.session_state.edit_id = document.get('_id', 'edited')


def render_submission(form, submission):
    """Show what a submitted form would persist."""
    if not submission.is_valid:
        st.error("Submission rejected")
        for name, message in submission.errors.items():
            st.error(f"{form.fields[name].label}: {message}")
        return

    st.success(f"Ready to {submission.action}")
    st.subheader("Document")
    st.json(submission.document)

    if submission.action == UPDATE:
        changed = changed_update_instruction(st.session_state.edit_document,
                                             form.form_to_object(st.session_state.last_elements), form.fields)
        if changed['$set']:
            st.subheader("Changed fields")
            st.json(changed)
        else:
            st.info("No changes")

    st.subheader("Update instruction")
    st.json(submission.update_instruction)


def render_main_content(form):
    st.title(form.label)

    elements = render_streamlit_form(form, st.session_state.edit_document, identity=DEFAULT_USER)
    if elements is not None:
        st.session_state.last_elements = elements
        st.session_state.last_submission = form.prepare_submission(
            DEFAULT_USER, elements, edit_id=st.session_state.edit_id
        )

    if st.session_state.last_submission is not None:
        render_submission(form, st.session_state.last_submission)

    with st.expander("HTML markup"):
        st.code(form.render_form(DEFAULT_USER, document=st.session_state.edit_document), language="html")


def main():
    """Main application entry point."""
    try:
        init_session_state()
        form = get_configured_form(config, **get_form_options(config))
        render_sidebar()
        render_main_content(form)
    except CrudFormError as e:
        log_error_with_context(e, "application startup")
        st.error(e.message)
        for suggestion in e.recovery_suggestions:
            st.info(suggestion)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        st.error(f"Unexpected error: {e}")


if __name__ == "__main__":
    main()
