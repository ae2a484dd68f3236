"""Inventory view page."""
from io import BytesIO

import pandas as pd
import streamlit as st
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle

from core.constants import MIN_STOCK_LEVEL_DEFAULT
from core.errors import GarageError
from core.inventory import (
    add_inventory_item,
    delete_inventory_item,
    update_inventory_item,
)
from core.services import bump_cache_version, get_inventory, watch_table
from ui.components import flash, show_error, show_flash

EXPORT_COLUMNS = {
    "item_name": "Item",
    "quantity": "Stock",
    "min_stock_level": "Minimum",
    "unit_price": "Unit Price",
    "supplier": "Supplier",
}


def _export_frame(df: pd.DataFrame) -> pd.DataFrame:
    export_df = df.copy()
    for col in EXPORT_COLUMNS:
        if col not in export_df.columns:
            export_df[col] = ""
    return export_df[list(EXPORT_COLUMNS)].rename(columns=EXPORT_COLUMNS)


def to_excel_bytes(df: pd.DataFrame) -> bytes:
    """Inventory as an .xlsx workbook with a styled table."""
    export_df = _export_frame(df)
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name="inventory")
        ws = writer.sheets["inventory"]
        max_col = len(export_df.columns)
        max_row = len(export_df) + 1
        if max_col and max_row > 1:
            from openpyxl.utils import get_column_letter
            from openpyxl.worksheet.table import Table as XlTable, TableStyleInfo as XlTableStyleInfo
            last_col = get_column_letter(max_col)
            table = XlTable(displayName="InventoryExport", ref=f"A1:{last_col}{max_row}")
            table.tableStyleInfo = XlTableStyleInfo(
                name="TableStyleMedium9",
                showFirstColumn=False,
                showLastColumn=False,
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(table)
            for idx, col_name in enumerate(export_df.columns, start=1):
                ws.column_dimensions[get_column_letter(idx)].width = max(12, len(str(col_name)) + 2)
    return buf.getvalue()


def to_pdf_bytes(df: pd.DataFrame) -> bytes:
    export_df = _export_frame(df)
    buf = BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=landscape(letter))
    data = [list(export_df.columns)] + export_df.fillna("").astype(str).values.tolist()
    table = Table(data)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    doc.build([table])
    return buf.getvalue()


def render(gateway, garage):
    """Render the inventory page."""
    st.header("\U0001F5C2️ Inventory")
    show_flash()
    if not garage:
        st.info("Select a garage to manage its inventory")
        return

    watch_table(gateway, "inventory", garage["id"])
    search = st.text_input("Search inventory by item or supplier")

    @st.fragment(run_every=5)
    def _inventory_table():
        df = get_inventory(gateway, garage["id"], search)
        if df.empty:
            st.info("No inventory items found")
            return
        display_df = _export_frame(df)
        low = pd.to_numeric(df["quantity"], errors="coerce").fillna(0) <= \
            pd.to_numeric(df["min_stock_level"], errors="coerce").fillna(0)
        display_df.insert(0, "⚠️", low.map(lambda x: "⚠️" if x else ""))
        st.dataframe(display_df, use_container_width=True, hide_index=True)

    _inventory_table()

    with st.expander("➕ Add Item"):
        with st.form("add_inventory_form", clear_on_submit=True):
            item_name = st.text_input("Item name")
            col1, col2 = st.columns(2)
            unit_price = col1.number_input("Unit price", min_value=0.0, step=1.0)
            supplier = col2.text_input("Supplier")
            col1, col2 = st.columns(2)
            quantity = col1.number_input("Quantity", min_value=0, step=1)
            min_stock = col2.number_input(
                "Minimum stock level", min_value=0, step=1, value=MIN_STOCK_LEVEL_DEFAULT
            )
            if st.form_submit_button("Add Item"):
                try:
                    add_inventory_item(
                        gateway,
                        garage["id"],
                        {
                            "item_name": item_name,
                            "unit_price": unit_price,
                            "supplier": supplier,
                            "quantity": quantity,
                            "min_stock_level": min_stock,
                        },
                    )
                except GarageError as e:
                    show_error(e)
                else:
                    bump_cache_version("inventory")
                    flash("Inventory item added successfully", "\U0001F4E6")
                    st.rerun()

    df = get_inventory(gateway, garage["id"])
    if df.empty:
        return

    with st.expander("✏️ Edit or delete an item"):
        names = dict(zip(df["id"], df["item_name"]))
        item_id = st.selectbox(
            "Item", list(names), format_func=lambda i: names[i], key="inv_edit_item"
        )
        row = df[df["id"] == item_id].iloc[0]
        with st.form(f"edit_inventory_{item_id}"):
            item_name = st.text_input("Item name", value=row["item_name"])
            col1, col2 = st.columns(2)
            unit_price = col1.number_input(
                "Unit price", min_value=0.0, value=float(row["unit_price"] or 0)
            )
            supplier = col2.text_input("Supplier", value=row["supplier"] or "")
            col1, col2 = st.columns(2)
            quantity = col1.number_input(
                "Quantity", min_value=0, step=1, value=int(row["quantity"] or 0)
            )
            min_stock = col2.number_input(
                "Minimum stock level", min_value=0, step=1,
                value=int(row["min_stock_level"] or 0),
            )
            col1, col2 = st.columns(2)
            save_clicked = col1.form_submit_button("\U0001F4BE Save")
            delete_clicked = col2.form_submit_button("\U0001F5D1️ Delete")
        if save_clicked or delete_clicked:
            try:
                if delete_clicked:
                    delete_inventory_item(gateway, garage["id"], item_id)
                    message = f"{row['item_name']} deleted"
                else:
                    update_inventory_item(
                        gateway,
                        garage["id"],
                        item_id,
                        {
                            "item_name": item_name,
                            "unit_price": unit_price,
                            "supplier": supplier,
                            "quantity": quantity,
                            "min_stock_level": min_stock,
                        },
                    )
                    message = f"{item_name} updated"
            except GarageError as e:
                show_error(e)
            else:
                bump_cache_version("inventory")
                flash(message, "\U0001F4E6")
                st.rerun()

    st.divider()
    st.subheader("Export")
    col1, col2 = st.columns(2)
    col1.download_button(
        "Export to Excel",
        data=to_excel_bytes(df),
        file_name="inventory_export.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    col2.download_button(
        "Export to PDF",
        data=to_pdf_bytes(df),
        file_name="inventory_export.pdf",
        mime="application/pdf",
    )
