"""
Relevés & Disponibilità - back office gestione affitti brevi.
Web app su Streamlit con Google Sheets come storage dei relevés.
"""

import dataclasses
import logging
from datetime import date, timedelta

import streamlit as st

from config import BLOCK_TYPES, DEFAULT_COMMISSION_RATE, PAYMENT_SOURCES
from core.availability import check_availability, conflict_report
from core.excel_writer import export_statement
from core.models import Room
from core.reservation_source import ReservationSourceError, fetch_reservations, save_owner_block
from core.sheets import load_statements, record_sent, save_statement
from core.statement_lines import replace_row
from core.statements import new_draft, update_statement
from core.totals import average_nightly_rate, with_owner_cleaning_fee
from core.transfers import allocate, transfer_details, unassigned_rows
from parsers.krossbooking_xlsx import StatementFileError, parse_statement_file
from parsers.reservations import to_float
from reports.pivot import conflicts_dataframe, statement_dataframe, summary_by_channel, tourist_tax_by_month

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Relevés & Disponibilità",
    page_icon="🏠",
    layout="wide",
)

st.title("🏠 Relevés & Disponibilità")


# ── Verifica configurazione ─────────────────────────────────────────────────
def check_sheets_connection() -> bool:
    try:
        _ = st.secrets["gcp_service_account"]
        _ = st.secrets["google_sheets"]["spreadsheet_id"]
        return True
    except (KeyError, FileNotFoundError):
        return False


def source_settings():
    try:
        cfg = st.secrets["reservation_source"]
        return cfg["url"], cfg.get("token", "")
    except (KeyError, FileNotFoundError):
        return None, ""


def configured_rooms() -> list:
    try:
        return [Room(str(r["id"]), str(r["external_room_id"]), r["name"]) for r in st.secrets["rooms"]]
    except (KeyError, FileNotFoundError):
        return []


with st.sidebar:
    st.header("Stato connessione")
    if check_sheets_connection():
        st.success("✓ Google Sheets connesso")
    else:
        st.error("✗ Credenziali Google mancanti")
    if source_settings()[0]:
        st.success("✓ Sorgente prenotazioni configurata")
    else:
        st.warning("Sorgente prenotazioni non configurata")
    st.caption("Configura `.streamlit/secrets.toml`")


def fmt_eur(v: float) -> str:
    return f"{v:,.2f} €".replace(",", " ")


tab_statement, tab_block, tab_saved, tab_tax = st.tabs(
    ["📥 Relevé", "📅 Blocco proprietario", "🗂 Relevés salvati", "🧾 Tassa di soggiorno"]
)


# ============================================================
# TAB 1: RELEVÉ
# ============================================================
with tab_statement:
    st.header("Genera un relevé")

    col1, col2, col3 = st.columns(3)
    with col1:
        client_id = st.text_input("Cliente (id)", key="client_id")
    with col2:
        period = st.text_input("Periodo", placeholder="2025-01", key="period")
    with col3:
        rate_pct = st.number_input(
            "Commissione %", min_value=0.0, max_value=100.0,
            value=DEFAULT_COMMISSION_RATE * 100, step=0.5,
        )

    uploaded = st.file_uploader("Export Krossbooking (.xlsx)", type=["xlsx"])

    if uploaded is not None and st.session_state.get("draft_file") != (uploaded.name, rate_pct):
        try:
            result = parse_statement_file(uploaded.getvalue(), rate_pct / 100)
        except StatementFileError as e:
            st.error(f"Errore nel file: {e}")
            st.session_state.pop("draft", None)
        else:
            st.session_state["draft"] = new_draft(client_id, period, result.rows)
            st.session_state["draft_file"] = (uploaded.name, rate_pct)
            st.session_state["draft_warnings"] = result.warnings
            st.session_state["tax_zeroed"] = result.tax_zeroed
            st.success(f"File \"{uploaded.name}\" analizzato: {len(result.rows)} prenotazioni.")

    draft = st.session_state.get("draft")
    if draft is not None:
        if st.session_state.get("tax_zeroed"):
            st.info("La tassa di soggiorno è stata messa a 0 per le prenotazioni Airbnb e Booking.com.")
        warnings = [w for w in st.session_state.get("draft_warnings", ()) if w.reason != "soggiorno proprietario"]
        if warnings:
            with st.expander(f"⚠️ {len(warnings)} righe ignorate"):
                for w in warnings:
                    st.write(str(w))

        # ── Righe (modificabili) ──
        st.subheader(f"Prenotazioni ({len(draft.rows)})")
        df = statement_dataframe(draft.rows)
        df.insert(0, "Selez.", True)
        editable = ["Selez.", "Notti", "Ospiti", "Soggiorno €", "Pulizie €", "Tassa soggiorno €",
                    "Comm. piattaforma €", "Costo pagamento €"]
        edited = st.data_editor(
            df, hide_index=True, use_container_width=True,
            disabled=[c for c in df.columns if c not in editable],
            key="rows_editor",
        )

        # Ricalcolo righe modificate: i campi calcolati derivano sempre dagli input
        field_by_label = {
            "Notti": "nights", "Ospiti": "guest_count", "Soggiorno €": "stay_price",
            "Pulizie €": "cleaning_fee", "Tassa soggiorno €": "tourist_tax",
            "Comm. piattaforma €": "platform_commission", "Costo pagamento €": "payment_fee",
        }
        rows = draft.rows
        for i in range(len(rows)):
            changes = {
                field: edited.iloc[i][label]
                for label, field in field_by_label.items()
                if round(to_float(edited.iloc[i][label]), 2) != round(to_float(df.iloc[i][label]), 2)
            }
            if changes:
                rows = replace_row(rows, i, **changes)

        owner_fee = st.number_input("Pulizie proprietario €", min_value=0.0, step=5.0,
                                    value=draft.totals.owner_cleaning_fee)
        draft = update_statement(draft, rows=rows) if rows is not draft.rows else draft
        draft = dataclasses.replace(draft, client_id=client_id, period=period,
                                    totals=with_owner_cleaning_fee(draft.totals, owner_fee))
        st.session_state["draft"] = draft

        # ── Totali ──
        t = draft.totals
        k1, k2, k3, k4 = st.columns(4)
        k1.metric("Commissione", fmt_eur(t.total_commission))
        k2.metric("Pulizie", fmt_eur(t.total_cleaning_fee))
        k3.metric("Totale fattura", fmt_eur(t.invoice_total))
        k4.metric("Netto versato", fmt_eur(t.total_net_paid_to_owner))
        k5, k6, k7, k8 = st.columns(4)
        k5.metric("Notti", t.total_nights)
        k6.metric("Ospiti", t.total_guests)
        k7.metric("Lordo", fmt_eur(t.total_gross_revenue))
        k8.metric("Prezzo medio/notte", fmt_eur(average_nightly_rate(t)))

        st.dataframe(summary_by_channel(draft.rows), use_container_width=True, hide_index=True)

        # ── Bonifici ──
        st.divider()
        collects_rent = st.checkbox("Incassiamo noi gli affitti (bonifici al proprietario)")
        details = None
        if collects_rent:
            sources = st.multiselect("Sorgenti di pagamento", PAYMENT_SOURCES, default=list(PAYMENT_SOURCES))
            deduct = st.checkbox("Detrai la fattura dal bonifico")
            deduction_source = st.selectbox("Sorgente da cui detrarre", sources) if deduct and sources else None
            selected = [r for r, sel in zip(draft.rows, edited["Selez."]) if sel]
            groups = allocate(selected, sources, deduction_source, t.invoice_total)
            for key, g in groups.items():
                st.metric(f"Bonifico {key}", fmt_eur(g.total),
                          delta=f"-{fmt_eur(g.deducted)}" if g.deducted else None)
            missing = unassigned_rows(selected, sources)
            if missing:
                st.warning(f"{len(missing)} prenotazioni senza sorgente di pagamento: escluse dai bonifici.")
            details = transfer_details(groups, deduction_source, draft.rows)

        # ── Salvataggio / export ──
        st.divider()
        col_save, col_xlsx = st.columns(2)
        with col_save:
            if st.button("✅ Salva relevé", type="primary", disabled=not check_sheets_connection()):
                try:
                    saved = save_statement(update_statement(draft, transfer_details=details))
                    st.success(f"Relevé salvato (id {saved.id}).")
                    for key in ("draft", "draft_file", "draft_warnings", "tax_zeroed"):
                        st.session_state.pop(key, None)
                except ValueError as e:
                    st.error(str(e))
                except Exception as e:
                    logger.exception("Salvataggio relevé fallito")
                    st.error(f"Errore: {e}")
        with col_xlsx:
            st.download_button(
                "⬇️ Scarica Excel",
                export_statement(draft),
                file_name=f"releve_{client_id or 'cliente'}_{period or 'periodo'}.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )


# ============================================================
# TAB 2: BLOCCO PROPRIETARIO
# ============================================================
with tab_block:
    st.header("Blocca delle date")
    url, token = source_settings()
    rooms = configured_rooms()

    if not url or not rooms:
        st.warning("Configura la sorgente prenotazioni e le camere in secrets.toml.")
    else:
        room = st.selectbox("Camera", rooms, format_func=lambda r: r.name)
        block_type = st.selectbox("Tipo di blocco", BLOCK_TYPES)
        col1, col2 = st.columns(2)
        with col1:
            arrival = st.date_input("Arrivo", value=date.today())
        with col2:
            departure = st.date_input("Partenza", value=date.today() + timedelta(days=1))
        with_cleaning = st.toggle("Prevedi pulizie")

        if departure < arrival:
            st.error("La partenza non può precedere l'arrivo.")
        else:
            try:
                reservations = fetch_reservations(url, token)
            except ReservationSourceError as e:
                st.error(str(e))
                reservations = None

            if reservations is not None:
                conflicts = check_availability(room, arrival, departure, reservations)
                if conflicts:
                    st.error(f"{len(conflicts)} prenotazioni in conflitto:")
                    st.dataframe(conflicts_dataframe(conflict_report(conflicts)), hide_index=True)
                else:
                    st.success("Date disponibili.")
                    if st.button("Crea blocco", type="primary"):
                        label = f"{block_type} {'avec' if with_cleaning else 'sans'} ménage"
                        try:
                            save_owner_block(url, room.external_room_id, label,
                                             arrival.isoformat(), departure.isoformat(),
                                             with_cleaning, token=token)
                            st.success("Blocco proprietario creato.")
                        except ReservationSourceError as e:
                            st.error(str(e))


# ============================================================
# TAB 3: RELEVÉS SALVATI
# ============================================================
with tab_saved:
    st.header("Relevés salvati")
    if not check_sheets_connection():
        st.warning("Connessione Google Sheets non configurata.")
    else:
        try:
            statements = load_statements()
        except Exception as e:
            st.error(f"Errore caricamento: {e}")
            statements = []

        if not statements:
            st.info("Nessun relevé salvato.")
        for s in statements:
            with st.expander(f"{s.client_id} — {s.period} — {s.status} — {fmt_eur(s.totals.invoice_total)}"):
                st.dataframe(statement_dataframe(s.rows), use_container_width=True, hide_index=True)
                if s.status != "sent" and st.button("📧 Segna come inviato", key=f"sent_{s.id}"):
                    record_sent(s)
                    st.success("Relevé segnato come inviato.")


# ============================================================
# TAB 4: TASSA DI SOGGIORNO
# ============================================================
with tab_tax:
    st.header("Tassa di soggiorno")
    url, token = source_settings()
    if not url:
        st.warning("Sorgente prenotazioni non configurata.")
    else:
        year = st.number_input("Anno", min_value=2020, max_value=2100, value=date.today().year, step=1)
        try:
            df_tax = tourist_tax_by_month(fetch_reservations(url, token), int(year))
            st.dataframe(df_tax, use_container_width=True, hide_index=True)
            st.metric("Notti tassabili", int(df_tax["notti_tassabili"].sum()))
        except ReservationSourceError as e:
            st.error(str(e))
