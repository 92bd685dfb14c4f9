import streamlit as st
import pandas as pd

from backend import EXPORT_FILES, DataManager
from exceptions import CircularRuleError, DataAlchemistError
from validators import ENTITIES, get_cross_validation_issues

st.set_page_config(page_title="Data Alchemist Dashboard", layout="wide")
st.title("🧪 Data Alchemist - Spreadsheet Simplifier")

# Instantiate DataManager (singleton in session state)
if "dm" not in st.session_state:
    st.session_state.dm = DataManager()

dm: DataManager = st.session_state.dm


def render_cycles(cycles):
    for cycle in cycles:
        st.write(" → ".join(cycle + cycle[:1]))


with st.sidebar:
    st.header("1. Upload Data Files")
    uploads = {
        entity: st.file_uploader(f"Upload {entity.capitalize()} file", type=["csv", "xlsx"], key=f"upload_{entity}")
        for entity in ENTITIES
    }

    if st.button("Load Uploaded Files"):
        for entity, uploaded_file in uploads.items():
            if uploaded_file is None:
                continue
            try:
                dm.load_file(uploaded_file, entity=entity, filename=uploaded_file.name)
                st.success(f"{entity.capitalize()} uploaded with {len(dm.batch(entity))} rows")
            except ValueError as e:
                st.error(f"Could not read {uploaded_file.name}: {e}")

    if st.button("Reset"):
        dm.reset()
        st.success("All data and rules cleared")


# --- Main workspace ---
errors = dm.validate_all()
summary = dm.summary(errors)

st.header("2. Data")
cols = st.columns(3)
for col, entity in zip(cols, ENTITIES):
    col.metric(
        entity.capitalize(),
        summary["dataCounts"][entity],
        f"{summary['errorCounts'][entity]} errors",
        delta_color="inverse",
    )

for entity in ENTITIES:
    rows = dm.batch(entity)
    if not rows:
        continue
    with st.expander(f"{entity.capitalize()} ({len(rows)} rows)", expanded=False):
        edited = st.data_editor(
            pd.DataFrame(rows, columns=dm.headers(entity)),
            num_rows="dynamic",
            key=f"editor_{entity}",
        )
        if st.button(f"Save {entity} edits", key=f"save_{entity}"):
            dm.set_batch(entity, edited.fillna("").to_dict(orient="records"))
            st.rerun()

st.header("3. Data Validation")
if not errors:
    st.success("No validation errors found!")
else:
    st.error(f"Found {len(errors)} validation errors:")
    st.table(pd.DataFrame(summary["errorTypes"].items(), columns=["Error", "Count"]))
    with st.expander("All errors"):
        st.dataframe(pd.DataFrame([error.to_dict() for error in errors]))

cross_issues = get_cross_validation_issues(errors)
if cross_issues:
    st.subheader("Cross Validation Issues")
    for issue in cross_issues:
        st.write(f"• {issue}")

st.markdown("---")
st.header("4. Co-Run Rules")

if dm.tasks:
    tab1, tab2, tab3 = st.tabs(["Select Tasks", "Describe Rule", "Suggestions"])

    with tab1:
        task_ids = [row.get("TaskID", "") for row in dm.tasks if row.get("TaskID")]
        selected = st.multiselect("Tasks that must run together", task_ids)
        if st.button("Add Rule", type="primary"):
            try:
                dm.add_rule({"type": "coRun", "tasks": selected})
                st.success("Rule added successfully!")
            except CircularRuleError as e:
                st.error("Adding this rule would create a circular dependency.")
                render_cycles(e.cycles)
            except DataAlchemistError as e:
                st.error(str(e))

    with tab2:
        nl_rule = st.text_input("Rule", placeholder="e.g. Make T1, T2 and T3 co-run")
        if st.button("Add Rule from Text"):
            try:
                rule = dm.add_rule_from_text(nl_rule)
                st.success(f"Rule added from text: {', '.join(rule.tasks)}")
            except CircularRuleError as e:
                st.error("Adding this rule would create a circular dependency.")
                render_cycles(e.cycles)
            except DataAlchemistError as e:
                st.error(str(e))

    with tab3:
        if st.button("Suggest Co-Run Rules"):
            st.session_state.suggestions = dm.suggest_rules()
        if st.button("Suggest Rules with AI"):
            try:
                with st.spinner("Asking the model for rule suggestions..."):
                    st.session_state.suggestions = dm.suggest_rules_with_ai()
            except DataAlchemistError as e:
                st.error(str(e))

        suggestions = st.session_state.get("suggestions", [])
        for suggestion in suggestions:
            st.json(suggestion["rule"])
            if suggestion["cycles"]:
                st.warning("Would create a circular dependency:")
                render_cycles(suggestion["cycles"])
        if suggestions and st.button("Accept Suggestions"):
            result = dm.accept_rules([suggestion["rule"] for suggestion in suggestions])
            st.success(f"Accepted {len(result['accepted'])} rules, rejected {len(result['rejected'])}")
            st.session_state.suggestions = []

if dm.rules:
    st.subheader("Existing Rules")
    for i, rule in enumerate(dm.rules):
        st.write(f"{i + 1}. **Co-Run:** {', '.join(rule.tasks)}")

cycles = dm.current_cycles()
if cycles:
    st.error(f"{len(cycles)} circular co-run rule{'s' if len(cycles) > 1 else ''} detected:")
    render_cycles(cycles)

st.markdown("---")
st.header("5. Suggested Assignments")
if dm.clients and dm.tasks and dm.workers:
    assignments = [assignment.to_dict() for assignment in dm.assignments()]
    if assignments:
        st.dataframe(pd.DataFrame(assignments))
    else:
        st.info("No requested task matches a known task")

st.markdown("---")
st.header("6. Export Data & Rules")

valid_only = st.checkbox("Export only rows without errors")
for name, media_type in EXPORT_FILES.items():
    st.download_button(
        f"Download {name}",
        data=dm.export_bytes(name, valid_only=valid_only),
        file_name=name,
        mime=media_type,
        key=f"download_{name}",
    )

if st.button("Export All to Folder"):
    outdir = dm.export_all()
    st.success(f"Exported data and rules to folder: {outdir}")
