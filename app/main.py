import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from datetime import date
from decimal import Decimal

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st
import structlog

from budget.config import settings
from budget.csv_io import (
    SOURCE_FORMATS,
    build_preview,
    detect_columns,
    export_csv,
    import_purchases,
    is_duplicate,
    purchases_to_rows,
    read_csv_text,
)
from budget.errors import BudgetError
from budget.events import EventBus
from budget.filters import PurchaseFilters, apply_filters
from budget.formatting import (
    clamp_percent,
    format_currency,
    format_percentage,
    month_label,
    progress_color,
)
from budget.functional import (
    unwrap,
    validate_category_input,
    validate_profile_input,
    validate_purchase_input,
    validate_wishlist_input,
)
from budget.log import configure_logging
from budget.preferences import load_preferences, save_preferences
from budget.services import AnalyticsService
from budget.store import InMemoryStore
from budget.sync import BudgetSync
from budget.transforms import load_seed
from budget.trends import category_breakdown

configure_logging(settings.log_level, settings.log_json)
logger = structlog.get_logger()

prefs = load_preferences(settings.preferences_path)

st.set_page_config(
    page_title="Household Budget",
    layout="wide",
    initial_sidebar_state="collapsed" if prefs["sidebar_collapsed"] else "expanded",
)


def run(coro):
    """Run a store call and wait for the reloads it triggers."""
    async def _with_drain():
        result = await coro
        await st.session_state.sync.drain()
        return result
    return asyncio.run(_with_drain())


def write(coro, success=None):
    """Run a validated write; report failures instead of raising."""
    try:
        run(coro)
    except BudgetError as exc:
        logger.warning("write_failed", error=str(exc))
        st.error(str(exc))
        return False
    if success:
        st.toast(success)
    st.rerun()


def save_prefs(**changes):
    prefs.update(changes)
    save_preferences(prefs, settings.preferences_path)


if "sync" not in st.session_state:
    seed = load_seed(settings.seed_path)
    user_id = seed.profile.id if seed.profile else "local"
    store = InMemoryStore.from_snapshot(seed, bus=EventBus())
    sync = BudgetSync(store, user_id, AnalyticsService(settings))
    sync.start()
    st.session_state.store = store
    st.session_state.sync = sync
    asyncio.run(sync.load_all())

store: InMemoryStore = st.session_state.store
sync: BudgetSync = st.session_state.sync

st.sidebar.markdown("### ⚙️ View")
toggles = {
    "include_wishlist": st.sidebar.toggle("Include wishlist", value=prefs["include_wishlist"]),
    "rollover_enabled": st.sidebar.toggle("Budget rollover", value=prefs["rollover_enabled"]),
    "dark_mode": st.sidebar.toggle("Dark charts", value=prefs["dark_mode"]),
    "sidebar_collapsed": st.sidebar.toggle("Start with sidebar collapsed", value=prefs["sidebar_collapsed"]),
}
if any(prefs[k] != v for k, v in toggles.items()):
    save_prefs(**toggles)
include_wishlist = toggles["include_wishlist"]
rollover_enabled = toggles["rollover_enabled"]
TEMPLATE = "plotly_dark" if toggles["dark_mode"] else "plotly_white"
sync.include_wishlist = include_wishlist
sync.rollover_enabled = rollover_enabled
report = sync.recompute()

snapshot = sync.snapshot
profile = snapshot.profile
currency = profile.currency if profile else settings.default_currency
categories = snapshot.categories
cat_names = {c.id: c.name for c in categories}
cat_ids = {c.name: c.id for c in categories}


def money(x) -> str:
    return format_currency(x, currency)


def category_index(category_id) -> int:
    ids = [c.id for c in categories]
    return ids.index(category_id) if category_id in ids else 0


if sync.last_error:
    st.error(f"Could not refresh data: {sync.last_error}")

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "🧾 Purchases", "🎯 Budgets", "📈 Analysis", "🛍 Wishlist", "⚙️ Settings"],
)

if menu == "🏠 Dashboard":
    st.title("🏠 Dashboard")
    budget_total = (
        report.total_effective_budget_this_month if rollover_enabled else report.total_budgeted_this_month
    )
    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Spent this month", money(report.total_spent_this_month))
    with k2:
        st.metric("Budget this month", money(budget_total))
    with k3:
        st.metric("Projected month-end", money(report.projection.projected))
    with k4:
        st.metric("Daily average", money(report.projection.daily_average))

    if rollover_enabled and report.total_rollover != 0:
        if report.total_rollover > 0:
            st.success(
                f"You have {money(report.total_rollover)} in unspent budget from previous months, "
                f"giving you an effective budget of {money(report.total_effective_budget_this_month)}."
            )
        else:
            st.warning(
                f"You overspent by {money(abs(report.total_rollover))} in previous months, "
                f"reducing your effective budget to {money(report.total_effective_budget_this_month)}."
            )

    if not report.allocation_valid and categories:
        st.warning(f"Category percentages add up to {format_percentage(report.allocation_total, 1)}, not 100%.")

    st.subheader("🔔 Alerts")
    if report.alerts:
        for alert in report.alerts:
            if alert.type.value == "overspent":
                st.error(alert.message)
            elif alert.type.value == "warning":
                st.warning(alert.message)
            else:
                st.info(alert.message)
    else:
        st.caption("No alerts. Everything is on track.")

    days = pd.DataFrame(
        [{"date": d.date, "amount": float(d.amount), "count": d.count} for d in report.daily_spending]
    )
    if not days.empty:
        fig_days = px.bar(days, x="date", y="amount", hover_data=["count"], title="Daily spending (30 days)",
                          template=TEMPLATE)
        st.plotly_chart(fig_days, use_container_width=True)

elif menu == "🧾 Purchases":
    st.title("🧾 Purchases")

    with st.form("purchase_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Name")
            amount = st.text_input("Amount")
        with col2:
            on = st.date_input("Date", value=date.today())
            category = st.selectbox("Category", [c.name for c in categories])
        notes = st.text_input("Notes (optional)")
        allow_duplicate = st.checkbox("Add even if it looks like a duplicate")
        submitted = st.form_submit_button("Add purchase")

    if submitted:
        try:
            draft = unwrap(validate_purchase_input(
                {"name": name, "amount": amount, "date": on, "category_id": cat_ids.get(category, ""),
                 "notes": notes},
                categories,
            ))
        except BudgetError as exc:
            st.error(str(exc))
        else:
            if not allow_duplicate and is_duplicate(draft.name, draft.amount, draft.date, snapshot.purchases):
                st.warning(
                    f"A purchase named {draft.name} for {money(draft.amount)} on {draft.date} already exists. "
                    "Tick the duplicate box to add it anyway."
                )
            else:
                write(store.create_purchase(sync.user_id, draft), "✅ Purchase added!")

    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search")
    with col2:
        selected_category = st.selectbox("Category filter", ["All"] + [c.name for c in categories])
    with col3:
        sort_by = st.selectbox("Sort by", ["date", "amount", "name"])

    filters = PurchaseFilters(
        category_id=cat_ids.get(selected_category),
        search=search or None,
        sort_by=sort_by,
    )
    filtered = apply_filters(snapshot.purchases, filters)
    rows = purchases_to_rows(filtered, categories)

    if rows:
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        st.download_button(
            "⬇️ Download CSV",
            export_csv(rows),
            file_name="purchases.csv",
            mime="text/csv",
        )
    else:
        st.info("No purchases match the selected filters")

    if filtered and categories:
        st.subheader("✏️ Edit purchase")
        by_id = {p.id: p for p in filtered}
        chosen = by_id[st.selectbox(
            "Purchase",
            list(by_id),
            format_func=lambda pid: f"{by_id[pid].date} · {by_id[pid].name} · {money(by_id[pid].amount)}",
        )]
        with st.form(f"edit_{chosen.id}"):
            col1, col2 = st.columns(2)
            with col1:
                name = st.text_input("Name", value=chosen.name)
                amount = st.text_input("Amount", value=str(chosen.amount))
            with col2:
                on = st.date_input("Date", value=chosen.date)
                category = st.selectbox(
                    "Category", [c.name for c in categories], index=category_index(chosen.category_id)
                )
            notes = st.text_input("Notes", value=chosen.notes)
            col_save, col_delete = st.columns(2)
            saved = col_save.form_submit_button("💾 Save changes")
            deleted = col_delete.form_submit_button("🗑 Delete purchase")
        if deleted:
            write(store.delete_purchase(chosen.id), "Purchase deleted")
        elif saved:
            try:
                draft = unwrap(validate_purchase_input(
                    {"name": name, "amount": amount, "date": on, "category_id": cat_ids.get(category, ""),
                     "notes": notes},
                    categories,
                ))
            except BudgetError as exc:
                st.error(str(exc))
            else:
                write(store.update_purchase(chosen.id, draft), "Purchase updated")

    st.subheader("📥 Import CSV")
    source_format = st.selectbox("CSV format", SOURCE_FORMATS)
    upload = st.file_uploader("Bank or store export", type=["csv"])
    if upload is not None and categories:
        headers, csv_rows = read_csv_text(upload.getvalue().decode("utf-8", errors="replace"))
        mapping = detect_columns(headers, source_format)
        try:
            preview = build_preview(headers, csv_rows, mapping, snapshot.purchases, categories[0].id)
        except BudgetError as exc:
            logger.warning("csv_preview_failed", file=upload.name, error=str(exc))
            st.error(str(exc))
            preview = ()
        if preview:
            st.dataframe(
                pd.DataFrame([
                    {"Date": r.raw_date, "Name": r.name, "Amount": float(r.amount), "Duplicate": r.is_duplicate}
                    for r in preview
                ]),
                hide_index=True,
            )
            if st.button(f"Import {sum(r.selected for r in preview)} rows"):
                outcome = run(import_purchases(store, sync.user_id, preview))
                st.success(
                    f"Imported {outcome.success}, failed {outcome.failed}, "
                    f"skipped {outcome.skipped_duplicates} duplicates"
                )

elif menu == "🎯 Budgets":
    st.title("🎯 Budgets")
    kept_open = st.multiselect(
        "Keep open",
        [c.id for c in categories],
        default=[cid for cid in prefs["expanded_categories"] if cid in cat_names],
        format_func=lambda cid: cat_names[cid],
    )
    if sorted(kept_open) != sorted(cid for cid in prefs["expanded_categories"] if cid in cat_names):
        save_prefs(expanded_categories=kept_open)

    for cb in report.category_budgets:
        budget_shown = cb.rollover.effective_budget if rollover_enabled else cb.budgeted.monthly
        pct_shown = cb.rollover.effective_percent_used if rollover_enabled else cb.monthly_percent_used
        with st.expander(
            f"{cb.category.name}: {money(cb.spent.this_month)} / {money(budget_shown)} "
            f"({format_percentage(pct_shown)})",
            expanded=cb.category.id in kept_open,
        ):
            st.progress(float(clamp_percent(pct_shown)) / 100)
            st.markdown(
                f"<span style='color:{progress_color(pct_shown)}'>Status: **{cb.status.value}**</span>",
                unsafe_allow_html=True,
            )
            c1, c2, c3 = st.columns(3)
            c1.metric("Daily budget", money(cb.budgeted.daily))
            c2.metric("Weekly budget", money(cb.budgeted.weekly))
            c3.metric("Yearly remaining", money(cb.yearly_remaining))
            if rollover_enabled and cb.rollover.amount != 0:
                sign = "+" if cb.rollover.amount > 0 else ""
                st.caption(f"{sign}{money(cb.rollover.amount)} rollover")
            if cb.monthly_purchases:
                st.table(pd.DataFrame(purchases_to_rows(cb.monthly_purchases)))

elif menu == "📈 Analysis":
    st.title("📈 Analysis")
    months = report.monthly_snapshots
    if months:
        fig_ts = go.Figure()
        labels = [month_label(m.month) for m in months]
        fig_ts.add_trace(go.Bar(x=labels, y=[float(m.total_spent) for m in months], name="Spent"))
        fig_ts.add_trace(go.Scatter(x=labels, y=[float(m.total_budgeted) for m in months],
                                    mode="lines+markers", name="Income"))
        fig_ts.update_layout(template=TEMPLATE, margin=dict(t=30, b=10, l=10, r=10))
        st.plotly_chart(fig_ts, use_container_width=True)

        per_cat = pd.DataFrame([
            {"month": month_label(m.month), "category": cat_names.get(cid, cid), "amount": float(v)}
            for m in months for cid, v in m.by_category.items()
        ])
        if not per_cat.empty:
            fig_cat = px.bar(per_cat, x="month", y="amount", color="category", title="Spend by category",
                             template=TEMPLATE)
            st.plotly_chart(fig_cat, use_container_width=True)

    top = list(category_breakdown(snapshot.purchases, categories, k=5))
    if top:
        fig_pie = px.pie(values=[float(t) for _, t in top], names=[n for n, _ in top],
                         title="Top categories (all time)")
        st.plotly_chart(fig_pie, use_container_width=True)

    st.metric("Projected month-end spend", money(report.projection.projected),
              delta=money(report.projection.budgeted - report.projection.projected) + " vs budget")

elif menu == "🛍 Wishlist":
    st.title("🛍 Wishlist")
    st.caption(f"Total wishlist cost: {money(report.total_wishlist_cost)}")
    priorities = ["high", "medium", "low"]
    with st.form("wishlist_form", clear_on_submit=True):
        name = st.text_input("Item")
        amount = st.text_input("Amount")
        category = st.selectbox("Category", [c.name for c in categories])
        priority = st.selectbox("Priority", priorities, index=1)
        submitted = st.form_submit_button("Add to wishlist")
    if submitted:
        try:
            draft = unwrap(validate_wishlist_input(
                {"name": name, "amount": amount, "category_id": cat_ids.get(category, ""), "priority": priority},
                categories,
            ))
        except BudgetError as exc:
            st.error(str(exc))
        else:
            write(store.create_wishlist_item(sync.user_id, draft))

    for item in snapshot.wishlist:
        with st.expander(f"{item.name} · {money(item.amount)} ({item.priority.value})"):
            with st.form(f"wish_{item.id}"):
                name = st.text_input("Item", value=item.name)
                amount = st.text_input("Amount", value=str(item.amount))
                category = st.selectbox(
                    "Category", [c.name for c in categories], index=category_index(item.category_id)
                )
                priority = st.selectbox("Priority", priorities, index=priorities.index(item.priority.value))
                notes = st.text_input("Notes", value=item.notes)
                col_save, col_delete = st.columns(2)
                saved = col_save.form_submit_button("💾 Save")
                deleted = col_delete.form_submit_button("🗑 Remove")
            if deleted:
                write(store.delete_wishlist_item(item.id))
            elif saved:
                try:
                    draft = unwrap(validate_wishlist_input(
                        {"name": name, "amount": amount, "category_id": cat_ids.get(category, ""),
                         "priority": priority, "notes": notes},
                        categories,
                    ))
                except BudgetError as exc:
                    st.error(str(exc))
                else:
                    write(store.update_wishlist_item(item.id, draft), "Wishlist item updated")

elif menu == "⚙️ Settings":
    st.title("⚙️ Settings")
    if profile:
        frequencies = ["weekly", "biweekly", "monthly"]
        with st.form("profile_form"):
            income = st.text_input("Income per paycheck", value=str(profile.income_amount))
            frequency = st.selectbox(
                "Pay frequency", frequencies, index=frequencies.index(profile.income_frequency.value)
            )
            cur = st.text_input("Currency", value=profile.currency)
            saved = st.form_submit_button("Save profile")
        if saved:
            try:
                draft = unwrap(validate_profile_input(
                    {"income_amount": income, "income_frequency": frequency, "currency": cur}
                ))
            except BudgetError as exc:
                st.error(str(exc))
            else:
                write(store.update_profile(sync.user_id, draft), "Profile saved")

    st.subheader("🗂 Categories")
    st.caption(f"Allocated: {format_percentage(report.allocation_total, 1)}")
    order = [c.id for c in categories]
    for i, c in enumerate(categories):
        cols = st.columns([4, 2, 1, 1, 1])
        cols[0].write(f"**{c.name}**")
        cols[1].write(format_percentage(c.percentage, 1))
        if cols[2].button("⬆", key=f"up_{c.id}", disabled=i == 0):
            order[i - 1], order[i] = order[i], order[i - 1]
            write(store.reorder_categories(sync.user_id, order))
        if cols[3].button("⬇", key=f"down_{c.id}", disabled=i == len(categories) - 1):
            order[i + 1], order[i] = order[i], order[i + 1]
            write(store.reorder_categories(sync.user_id, order))
        if cols[4].button("🗑", key=f"cat_{c.id}"):
            write(store.delete_category(c.id), f"{c.name} removed")

    if categories:
        editing = categories[st.selectbox(
            "Edit category", range(len(categories)), format_func=lambda i: categories[i].name
        )]
        with st.form(f"category_edit_{editing.id}"):
            name = st.text_input("Name", value=editing.name)
            pct = st.text_input("Percentage of income", value=str(editing.percentage))
            color = st.color_picker("Color", value=editing.color)
            saved = st.form_submit_button("💾 Save category")
        if saved:
            other = sum((c.percentage for c in categories if c.id != editing.id), Decimal(0))
            try:
                draft = unwrap(validate_category_input(
                    {"name": name, "percentage": pct, "color": color, "icon": editing.icon}
                ))
            except BudgetError as exc:
                st.error(str(exc))
            else:
                if other + draft.percentage > 100:
                    st.warning(f"Categories will add up to {format_percentage(other + draft.percentage, 1)}.")
                write(store.update_category(editing.id, draft), f"{draft.name} updated")

    with st.form("category_form", clear_on_submit=True):
        name = st.text_input("Name")
        pct = st.text_input("Percentage of income")
        color = st.color_picker("Color", value="#22c55e")
        added = st.form_submit_button("Add category")
    if added:
        try:
            draft = unwrap(validate_category_input({"name": name, "percentage": pct, "color": color}))
        except BudgetError as exc:
            st.error(str(exc))
        else:
            write(store.create_category(sync.user_id, draft, order=len(categories) + 1))
