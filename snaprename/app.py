"""Browser app: paste item codes, upload product photos, download renamed images."""

import asyncio
import os

import streamlit as st
from langchain.chat_models import init_chat_model

from snaprename.export import ARCHIVE_FILENAME
from snaprename.models.item import ImageItem, ItemStatus
from snaprename.processors.image_renamer import DEFAULT_MODEL_IDENTIFIER, MODEL_ENVVAR, ImageRenamer
from snaprename.session import RenameSession


CODES_PLACEHOLDER = "L41086600 (for a batch of images)\nor\nL41086601 (one per image)\nL47231700\n..."

RESULT_COLUMNS = 3


def _get_session() -> RenameSession:
    if "session" not in st.session_state:
        st.session_state.session = RenameSession()
        st.session_state.uploader_key = 0
    return st.session_state.session


def _get_renamer() -> ImageRenamer:
    if "renamer" not in st.session_state:
        llm = init_chat_model(model=os.environ.get(MODEL_ENVVAR, DEFAULT_MODEL_IDENTIFIER))
        st.session_state.renamer = ImageRenamer(llm=llm)
    return st.session_state.renamer


def _render_card(slot, session: RenameSession, item: ImageItem) -> None:
    """Draw one item's card into its placeholder, replacing what was there."""
    with slot.container():
        preview = session.store.preview(item.id)
        if preview is not None:
            st.image(preview, width="stretch")
        st.caption(item.original_name)

        if item.status == ItemStatus.PENDING:
            st.info("Pending")
        elif item.status == ItemStatus.PROCESSING:
            st.warning("Processing...")
        elif item.status == ItemStatus.COMPLETED:
            st.success(item.new_name)
        else:
            st.error(item.error_message)


def _run_processing(session: RenameSession, cards: dict) -> None:
    """Process the pending images, redrawing each card as its item changes state."""

    def redraw(items: list[ImageItem]) -> None:
        for item in items:
            _render_card(cards[item.id], session, item)

    async def drive() -> None:
        async for item in session.stream_processing(_get_renamer(), on_start=redraw):
            redraw([item])

    try:
        asyncio.run(drive())
    except ValueError:
        # The session keeps the message for display.
        pass


def _on_clear() -> None:
    session = _get_session()
    session.clear()
    st.session_state.codes_text = ""
    st.session_state.uploader_key += 1


def main() -> None:
    st.set_page_config(page_title="AI Bulk Image Renamer", page_icon="📸", layout="wide")
    session = _get_session()

    header, actions = st.columns([3, 1])
    header.title("📸 AI Bulk Image Renamer")

    actions_slot = actions.empty()
    with actions_slot.container():
        if session.completed_count > 0:
            st.download_button(
                "Download All",
                data=session.export_archive(),
                file_name=ARCHIVE_FILENAME,
                mime="application/zip",
            )
        if len(session.store) > 0:
            st.button("Clear All", on_click=_on_clear)

    if "codes_text" not in st.session_state:
        st.session_state.codes_text = session.item_codes
    codes_slot = st.empty()
    session.item_codes = codes_slot.text_area(
        "1. Paste Item Codes (one per line)",
        key="codes_text",
        height=140,
        placeholder=CODES_PLACEHOLDER,
    )

    # A fresh uploader key empties the widget once its files have been taken over,
    # so later selections add to the collection instead of replacing it.
    uploader_slot = st.empty()
    uploaded = uploader_slot.file_uploader(
        "2. Upload Matching Images",
        type=["jpg", "jpeg", "png", "gif", "webp", "bmp", "tif", "tiff"],
        accept_multiple_files=True,
        key=f"uploader-{st.session_state.uploader_key}",
    )
    if uploaded:
        session.add_files((file.name, file.getvalue()) for file in uploaded)
        st.session_state.uploader_key += 1
        st.rerun()

    if session.error:
        st.error(f"**Error**\n\n{session.error}")

    run_requested = False
    pending = session.pending_count
    if pending > 0:
        button_slot = st.empty()
        run_requested = button_slot.button(f"Process {pending} Image(s)", type="primary")
        if run_requested:
            # Widgets that would rerun the script are locked until the run ends.
            button_slot.button("Processing...", type="primary", disabled=True, key="processing")
            actions_slot.empty()
            uploader_slot.empty()
            codes_slot.text_area(
                "1. Paste Item Codes (one per line)",
                value=session.item_codes,
                height=140,
                disabled=True,
                key="codes_locked",
            )

    items = session.items
    if not items:
        st.markdown("**Ready to start renaming.**")
        st.caption("Enter item codes and upload your product images.")
        return

    columns = st.columns(RESULT_COLUMNS)
    cards = {}
    for index, item in enumerate(items):
        cards[item.id] = columns[index % RESULT_COLUMNS].empty()
        _render_card(cards[item.id], session, item)

    if run_requested:
        _run_processing(session, cards)
        st.rerun()


main()
