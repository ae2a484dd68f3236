"""Job card list, create/edit form and read-only view."""
from datetime import date

import pandas as pd
import streamlit as st
from streamlit_free_text_select import st_free_text_select

from core.config import get_storage_root
from core.constants import JOB_STATUSES, PHOTO_BUCKET, PHOTO_TYPES
from core.errors import GarageError, SaveInProgressError
from core.inventory import inventory_options
from core.job_cards import (
    MODE_CREATE,
    MODE_UPDATE,
    JobCardWorkflow,
    list_completed,
    list_photos,
)
from core.job_totals import calculate_job_total
from core.models import Car, Customer, JobCard, JobCardPart, Service, StagedPhoto
from core.services import bump_cache_version
from core.staff import staff_options
from core.storage import LocalObjectStorage
from ui.components import flash, format_money, image_to_base64, show_error, show_flash, status_badge

CUSTOM_PART = "custom"


@st.cache_resource
def _get_storage():
    return LocalObjectStorage(get_storage_root())


def _workflow(gateway) -> JobCardWorkflow:
    if "job_workflow" not in st.session_state:
        st.session_state.job_workflow = JobCardWorkflow(gateway, _get_storage())
    return st.session_state.job_workflow


def _open(mode, job_id=None):
    st.session_state.job_mode = mode
    st.session_state.job_id = job_id
    st.session_state.pop("job_form_card", None)


def render(gateway, garage):
    """Render the job cards page."""
    st.header("\U0001F527 Job Cards")
    show_flash()
    render_stock_warning()
    if not garage:
        st.info("Select a garage to manage job cards")
        return

    mode = st.session_state.get("job_mode", "list")
    if mode == "list":
        _render_list(gateway, garage)
    elif mode == "view":
        _render_view(gateway, garage, st.session_state.get("job_id"))
    else:
        _render_form(gateway, garage, mode, st.session_state.get("job_id"))


def _render_list(gateway, garage):
    if st.button("➕ New Job Card"):
        _open(MODE_CREATE)
        st.rerun()

    st.subheader("Completed & Ready for Pickup")
    try:
        cards = list_completed(gateway, garage["id"])
    except GarageError as e:
        show_error(e)
        return
    if not cards:
        st.info("No completed job cards yet")
        return

    for card in cards:
        col1, col2, col3, col4 = st.columns([5, 2, 1, 1])
        with col1:
            st.markdown(
                f"**{card.customer.name}** · {card.car.make} {card.car.model} "
                f"({card.car.plate}) · {status_badge(card.status)}",
                unsafe_allow_html=True,
            )
        col2.write(format_money(calculate_job_total(card)))
        if col3.button("\U0001F441️", key=f"view_{card.id}", help="View"):
            _open("view", card.id)
            st.rerun()
        if col4.button("✏️", key=f"edit_{card.id}", help="Edit"):
            _open(MODE_UPDATE, card.id)
            st.rerun()

    st.divider()
    with st.form("open_job_form"):
        job_id = st.text_input("Open job card by ID")
        if st.form_submit_button("Edit") and job_id.strip():
            _open(MODE_UPDATE, job_id.strip())
            st.rerun()


def _render_view(gateway, garage, job_id):
    workflow = _workflow(gateway)
    try:
        card = workflow.load(job_id, garage["id"]) if job_id else None
        photos = list_photos(gateway, card.id) if card else []
    except GarageError as e:
        show_error(e)
        return
    if st.button("← Back to list"):
        _open("list")
        st.rerun()
    if card is None:
        st.error("Failed to load job card details")
        return

    st.markdown(status_badge(card.status), unsafe_allow_html=True)
    col1, col2 = st.columns(2)
    col1.markdown(f"**Customer:** {card.customer.name}  \n**Phone:** {card.customer.phone}")
    col2.markdown(
        f"**Car:** {card.car.make} {card.car.model}  \n**Plate:** {card.car.plate}"
    )
    st.markdown(f"**Work:** {card.description}")
    st.markdown(f"**Assigned staff:** {card.assigned_staff or '-'}")
    if card.parts:
        st.dataframe(
            pd.DataFrame([
                {"Part": p.name, "Qty": p.quantity, "Unit price": p.unit_price,
                 "Total": p.line_total}
                for p in card.parts
            ]),
            use_container_width=True,
            hide_index=True,
        )
    if card.selected_services:
        st.dataframe(
            pd.DataFrame([
                {"Service": s.service_name, "Price": s.price}
                for s in card.selected_services
            ]),
            use_container_width=True,
            hide_index=True,
        )
    st.metric("Total", format_money(calculate_job_total(card)))
    if card.notes:
        st.caption(card.notes)

    if photos:
        st.subheader("Photos")
        storage = _get_storage()
        cols = st.columns(4)
        for i, photo in enumerate(photos):
            uri = image_to_base64(storage.url_for(PHOTO_BUCKET, photo["url"]))
            if uri:
                cols[i % 4].image(uri, caption=photo.get("photo_type"))

    if st.button("✏️ Edit"):
        _open(MODE_UPDATE, card.id)
        st.rerun()


def _parts_frame(card, options):
    names = {o["id"]: o["item_name"] for o in options}
    return pd.DataFrame(
        [
            {
                "Part": p.name,
                "Inventory item": names.get(p.inventory_id, CUSTOM_PART),
                "Qty": p.quantity,
                "Unit price": p.unit_price,
                "In stock": p.in_stock,
            }
            for p in card.parts
        ],
        columns=["Part", "Inventory item", "Qty", "Unit price", "In stock"],
    )


def _parts_from_frame(df, options):
    by_name = {o["item_name"]: o for o in options}
    parts = []
    for _, row in df.iterrows():
        item = by_name.get(row.get("Inventory item"))
        name = str(row.get("Part") or "").strip() or (item["item_name"] if item else "")
        if not name:
            continue
        price = row.get("Unit price")
        if (price is None or pd.isna(price)) and item:
            price = item["unit_price"]
        qty = row.get("Qty")
        parts.append(
            JobCardPart(
                name=name,
                quantity=0 if qty is None or pd.isna(qty) else int(qty),
                unit_price=0.0 if price is None or pd.isna(price) else float(price),
                inventory_id=item["id"] if item else CUSTOM_PART,
                in_stock=bool(row.get("In stock")) if item else False,
            )
        )
    return parts


def _services_from_frame(df):
    services = []
    for _, row in df.iterrows():
        name = str(row.get("Service") or "").strip()
        if not name:
            continue
        price = row.get("Price")
        services.append(
            Service(service_name=name, price=0.0 if price is None or pd.isna(price) else float(price))
        )
    return services


def _optional_date(value):
    return value.isoformat() if isinstance(value, date) else None


def _parse_date(value):
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _form_choices(gateway, garage_id):
    """Inventory items and staff names offered by the form."""
    return inventory_options(gateway, garage_id), staff_options(gateway, garage_id)


def _render_form(gateway, garage, mode, job_id):
    workflow = _workflow(gateway)
    if st.button("← Back to list"):
        _open("list")
        st.rerun()

    try:
        if "job_form_card" not in st.session_state:
            if mode == MODE_UPDATE:
                card = workflow.load(job_id, garage["id"])
                if card is None:
                    st.error("Failed to load job card details")
                    return
            else:
                card = JobCard.blank(date.today())
            st.session_state.job_form_card = card
        options, staff = _form_choices(gateway, garage["id"])
    except GarageError as e:
        show_error(e)
        return
    card = st.session_state.job_form_card

    st.subheader("Edit Job Card" if mode == MODE_UPDATE else "New Job Card")

    col1, col2 = st.columns(2)
    customer_name = col1.text_input("Customer name *", value=card.customer.name)
    customer_phone = col2.text_input("Customer phone *", value=card.customer.phone)
    col1, col2, col3 = st.columns(3)
    car_make = col1.text_input("Car make *", value=card.car.make)
    car_model = col2.text_input("Car model *", value=card.car.model)
    car_plate = col3.text_input("License plate *", value=card.car.plate)
    description = st.text_area("Work description *", value=card.description)

    col1, col2 = st.columns(2)
    status = col1.selectbox(
        "Status", JOB_STATUSES,
        index=JOB_STATUSES.index(card.status) if card.status in JOB_STATUSES else 0,
    )
    staff_choices = list(staff)
    if card.assigned_staff and card.assigned_staff not in staff_choices:
        staff_choices.append(card.assigned_staff)
    with col2:
        assigned_staff = st_free_text_select(
            "Assigned staff *",
            staff_choices,
            index=staff_choices.index(card.assigned_staff) if card.assigned_staff else None,
            key=f"assigned_staff_{card.id or 'new'}",
            placeholder="Type to search or add",
        )
    assigned_staff = (assigned_staff or "").strip()
    # Reuse the stored spelling when a typed name matches a staff member
    assigned_staff = next(
        (s for s in staff if s.lower() == assigned_staff.lower()), assigned_staff
    )
    if not staff:
        col2.caption("Add staff on the Staff page.")

    col1, col2, col3 = st.columns(3)
    labor_hours = col1.number_input("Labor hours", min_value=0.0, value=float(card.labor_hours))
    hourly_rate = col2.number_input("Hourly rate", min_value=0.0, value=float(card.hourly_rate))
    manual_labor_cost = col3.number_input(
        "Manual labor cost", min_value=0.0, value=float(card.manual_labor_cost)
    )

    col1, col2, col3 = st.columns(3)
    job_date = col1.date_input("Job date", value=_parse_date(card.job_date) or date.today())
    estimated = col2.date_input(
        "Estimated completion", value=_parse_date(card.estimated_completion_date)
    )
    actual = col3.date_input(
        "Actual completion", value=_parse_date(card.actual_completion_date)
    )

    st.markdown("**Parts**")
    parts_df = st.data_editor(
        _parts_frame(card, options),
        num_rows="dynamic",
        use_container_width=True,
        key=f"parts_editor_{card.id or 'new'}",
        column_config={
            "Inventory item": st.column_config.SelectboxColumn(
                options=[CUSTOM_PART] + [o["item_name"] for o in options],
                default=CUSTOM_PART,
            ),
            "Qty": st.column_config.NumberColumn(min_value=0, step=1, default=1, format="%d"),
            "Unit price": st.column_config.NumberColumn(min_value=0.0),
            "In stock": st.column_config.CheckboxColumn(default=True),
        },
    )

    st.markdown("**Services**")
    services_df = st.data_editor(
        pd.DataFrame(
            [{"Service": s.service_name, "Price": s.price} for s in card.selected_services],
            columns=["Service", "Price"],
        ),
        num_rows="dynamic",
        use_container_width=True,
        key=f"services_editor_{card.id or 'new'}",
    )

    notes = st.text_area("Notes", value=card.notes)

    st.markdown("**Photos**")
    photo_type = st.radio("Photo type", PHOTO_TYPES, horizontal=True)
    uploads = st.file_uploader(
        "Attach photos", type=["png", "jpg", "jpeg", "webp"], accept_multiple_files=True
    )

    edited = JobCard(
        id=card.id,
        customer=Customer(name=customer_name, phone=customer_phone),
        car=Car(make=car_make, model=car_model, plate=car_plate),
        description=description,
        status=status,
        assigned_staff=assigned_staff,
        labor_hours=labor_hours,
        hourly_rate=hourly_rate,
        manual_labor_cost=manual_labor_cost,
        parts=_parts_from_frame(parts_df, options),
        selected_services=_services_from_frame(services_df),
        notes=notes,
        job_date=job_date.isoformat() if isinstance(job_date, date) else card.job_date,
        estimated_completion_date=_optional_date(estimated),
        actual_completion_date=_optional_date(actual),
        gst_slab_id=card.gst_slab_id,
    )
    st.metric("Estimated total", format_money(calculate_job_total(edited)))

    if st.button("\U0001F4BE Save Job Card", type="primary", disabled=workflow.is_saving):
        photos = [
            StagedPhoto(
                file_name=f.name, content=f.getvalue(),
                photo_type=photo_type, content_type=f.type or "",
            )
            for f in uploads or []
        ]
        try:
            result = workflow.save(edited, mode, garage["id"], photos)
        except SaveInProgressError:
            st.warning("A save is already in progress")
            return
        except GarageError as e:
            show_error(e)
            return

        bump_cache_version("job_cards")
        bump_cache_version("inventory")
        if result.warning:
            st.session_state["job_stock_warning"] = result.warning
        flash(result.message, "\U0001F527")
        _open("list")
        st.rerun()


def render_stock_warning():
    """Show the last save's stock warning, if any, on the list view."""
    warning = st.session_state.pop("job_stock_warning", None)
    if warning:
        st.warning(warning)
