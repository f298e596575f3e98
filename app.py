from __future__ import annotations
import logging
import threading
import streamlit as st
import pandas as pd
from results.constants import (
    CRITERIA,
    GROUP_NAMES,
    GROUPS,
    MAX_CHART_ENTRIES,
    MAX_TABLE_ENTRIES,
    SORT_ORDERS,
    STUDENT_NAME_TEMPLATE,
    STUDENT_NAME_TEMPLATE_BN,
)
from results.errors import UploadError
from results.export import export_to_excel_bytes, template_excel_bytes
from results.header_detect import describe_columns
from results.history import (
    build_exam,
    exam_subject_entries,
    filter_history,
    recompute_exam_stats,
    search_candidates,
    student_history,
)
from results.ingest import ingest_upload
from results.policy import config_key, find_config, history_pass_mark, parse_subject_config
from results.stats import failed_frame, grade_distribution_frame, group_statistics_frame, students_frame
from results.store import FileStore, LocalCache
from results.sync import DataService
from results.utils import setup_logging
from results.view import ALL, ViewRequest, build_dashboard_view, grade_buckets, sort_students

setup_logging()
logger = logging.getLogger("results.app")

st.set_page_config(page_title="শিক্ষার্থী ফলাফল ড্যাশবোর্ড", layout="wide")
st.title("শিক্ষার্থী ফলাফল বিশ্লেষণ ড্যাশবোর্ড")
# =========================

# Service + live feed
# =========================
@st.cache_resource
def get_service():
    service = DataService(FileStore(), LocalCache())
    live = {"records": None, "version": 0, "lock": threading.Lock()}

    def on_push(records):
        # runs on the debounce timer thread; the next rerun picks it up
        with live["lock"]:
            live["records"] = records
            live["version"] += 1

    service.subscribe(on_push)
    return service, live


service, live = get_service()

if "records" not in st.session_state:
    st.session_state["records"] = service.load_data() or []
    st.session_state["live_version"] = live["version"]
for k, v in [("duplicates", []), ("column_check", None), ("subject", ""), ("class_name", ""), ("session", ""), ("exam_name", "")]:
    st.session_state.setdefault(k, v)

with live["lock"]:
    if live["version"] != st.session_state["live_version"] and live["records"] is not None:
        st.session_state["records"] = live["records"]
        st.session_state["live_version"] = live["version"]

if not service.online:
    st.warning("সার্ভারের সাথে সংযোগ নেই। সর্বশেষ সংরক্ষিত (অফলাইন) ডেটা দেখানো হচ্ছে।")

configs = service.store.get_subject_configs()
class_subjects = service.store.get_class_subjects()
# =========================

# Sidebar: upload + context + filters
# =========================
with st.sidebar:
    st.header("ডেটা আপলোড")
    upload = st.file_uploader("JSON বা Excel (.xlsx, .xls) ফাইল", type=["json", "xlsx", "xls"])
    bn_names = st.checkbox("নাম না থাকলে বাংলা নাম ব্যবহার করুন", value=True)

    if upload is not None and st.button("আপলোড করুন", type="primary"):
        template = STUDENT_NAME_TEMPLATE_BN if bn_names else STUDENT_NAME_TEMPLATE
        try:
            result = ingest_upload(upload.name, upload.getvalue(), name_template=template)
        except UploadError as e:
            logger.warning("Upload %s rejected: %s", upload.name, e.code)
            st.error(e.message)
        else:
            st.session_state["records"] = result["students"]
            st.session_state["duplicates"] = result["duplicates"]
            st.session_state["column_check"] = (result["headers"], result["column_map"]) if result["column_map"] else None
            if result["subject"]:
                st.session_state["subject"] = result["subject"]
            if service.save_data(result["students"]):
                st.success(f"{len(result['students'])} জন শিক্ষার্থীর ডেটা লোড হয়েছে")
            else:
                st.warning("ডেটা লোড হয়েছে, কিন্তু সার্ভারে সেভ করা যায়নি (অফলাইন কপি রাখা হয়েছে)")

    st.download_button(
        "ডেমো টেমপ্লেট ডাউনলোড",
        data=template_excel_bytes(),
        file_name="student_data_template.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )

    if st.button("সব ডেটা মুছুন"):
        if service.clear_data():
            st.session_state["records"] = []
            st.session_state["duplicates"] = []
            st.rerun()
        else:
            st.error("ডেটা মুছতে সমস্যা হয়েছে")

    st.header("পরীক্ষার তথ্য")
    class_options = [""] + sorted(class_subjects.keys())
    class_name = st.selectbox(
        "শ্রেণি",
        class_options,
        index=class_options.index(st.session_state["class_name"]) if st.session_state["class_name"] in class_options else 0,
    )
    mapped = class_subjects.get(class_name, [])
    if mapped:
        subject = st.selectbox(
            "বিষয়",
            mapped,
            index=mapped.index(st.session_state["subject"]) if st.session_state["subject"] in mapped else 0,
        )
    else:
        subject = st.text_input("বিষয়", value=st.session_state["subject"])
    session = st.text_input("সেশন", value=st.session_state["session"])
    st.session_state.update({"class_name": class_name, "subject": subject, "session": session})

    st.header("ফিল্টার")
    group = st.selectbox("গ্রুপ", [ALL] + GROUPS, format_func=lambda g: "সব গ্রুপ" if g == ALL else GROUP_NAMES[g])
    search_term = st.text_input("নাম বা রোল দিয়ে খুঁজুন", value="")
    grade = st.selectbox("গ্রেড / অবস্থা", grade_buckets())
    criteria = st.selectbox("মানদণ্ড", list(CRITERIA.keys()), format_func=lambda c: CRITERIA[c])
    sort_order = st.selectbox("সাজানো", list(SORT_ORDERS.keys()), format_func=lambda o: SORT_ORDERS[o])

    theme_options = ["light", "dark"]
    current_theme = service.load_theme()
    theme = st.radio("থিম", theme_options, index=theme_options.index(current_theme) if current_theme in theme_options else 0, horizontal=True)
    if theme != current_theme:
        service.save_theme(theme)

records = st.session_state["records"]
request = ViewRequest(
    group=group,
    search_term=search_term,
    grade=grade,
    criteria=criteria,
    sort_field=criteria,
    sort_order=sort_order,
    subject=subject,
    class_name=class_name,
    session=session,
)
view = build_dashboard_view(records, request, configs)
policy = view["policy"]

tab_dash, tab_config, tab_exams, tab_history = st.tabs(
    ["ড্যাশবোর্ড", "বিষয় কনফিগারেশন", "সংরক্ষিত পরীক্ষা", "শিক্ষার্থী বিশ্লেষণ"]
)
# =========================

# Dashboard
# =========================
with tab_dash:
    if not records:
        st.info("কোনো ডেটা নেই। একটি JSON বা Excel ফাইল আপলোড করুন।")
    else:
        if view["config_key"]:
            st.caption(f"কনফিগারেশন: {view['config_key']} (লিখিত পাস {policy['written_pass']}, MCQ পাস {policy['mcq_pass']})")
        else:
            st.caption(f"ডিফল্ট পাস মার্ক: লিখিত {policy['written_pass']}, MCQ {policy['mcq_pass']}")

        stats = view["statistics"]
        c1, c2, c3, c4, c5 = st.columns(5)
        c1.metric("মোট শিক্ষার্থী", stats["total_students"])
        c2.metric("পরীক্ষার্থী", stats["participants"])
        c3.metric("পাস", stats["passed_students"])
        c4.metric("ফেল", stats["failed_students"])
        c5.metric("অনুপস্থিত", stats["absent_students"])
        st.progress(stats["pass_rate"] / 100, text=f"পাসের হার {stats['pass_rate']}%")

        column_check = st.session_state.get("column_check")
        if column_check:
            with st.expander("কলাম শনাক্তকরণ", expanded=False):
                headers, column_map = column_check
                st.dataframe(pd.DataFrame(describe_columns(headers, column_map)), width="stretch", hide_index=True)

        st.subheader("গ্রুপভিত্তিক পরিসংখ্যান")
        st.dataframe(group_statistics_frame(records, policy), width="stretch", hide_index=True)

        g1, g2 = st.columns(2)
        with g1:
            st.subheader("গ্রেড বিতরণ")
            st.bar_chart(grade_distribution_frame(stats), x="Grade", y="Students")
        with g2:
            st.subheader(CRITERIA[criteria])
            chart_rows = view["rows"][:MAX_CHART_ENTRIES]
            if chart_rows:
                chart_df = pd.DataFrame({
                    "Student": [f"{r.get('id')} {r.get('name', '')}" for r in chart_rows],
                    CRITERIA[criteria]: [r.get(criteria) or 0 for r in chart_rows],
                })
                st.bar_chart(chart_df, x="Student", y=CRITERIA[criteria])

        st.subheader(f"শিক্ষার্থী তালিকা ({len(view['rows'])})")
        table = students_frame(view["rows"][:MAX_TABLE_ENTRIES], policy)
        st.dataframe(table, width="stretch", hide_index=True)

        st.subheader(f"ফেল করা শিক্ষার্থী ({len(view['failed'])})")
        ff = failed_frame(view["rows"], policy)
        if ff.empty:
            st.success("কোনো শিক্ষার্থী ফেল করেনি")
        else:
            st.dataframe(ff, width="stretch", hide_index=True)

        dups = st.session_state.get("duplicates") or []
        if dups:
            with st.expander(f"বাদ দেওয়া ডুপ্লিকেট সারি ({len(dups)})", expanded=False):
                st.dataframe(pd.DataFrame(dups), width="stretch", hide_index=True)

        xbytes = export_to_excel_bytes(view["rows"], subject, policy, duplicates=dups)
        st.download_button(
            "Excel ডাউনলোড",
            data=xbytes,
            file_name=f"{st.session_state['exam_name'] or subject or 'students_data'}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
# =========================

# Subject configuration
# =========================
with tab_config:
    st.subheader("বিষয়ভিত্তিক পাস মার্ক")
    keys = [k for k in configs.keys() if k not in ("updatedAt", "updated_at")]
    editing = st.selectbox("বিদ্যমান কনফিগারেশন", ["(নতুন)"] + keys)
    current = parse_subject_config(configs.get(editing) if editing != "(নতুন)" else None)

    with st.form("subject_config_form"):
        k1, k2, k3 = st.columns(3)
        with k1:
            cfg_subject = st.text_input("বিষয়ের নাম", value=editing if editing != "(নতুন)" else subject)
        with k2:
            cfg_class = st.text_input("শ্রেণি (ঐচ্ছিক)", value="")
        with k3:
            cfg_session = st.text_input("সেশন (ঐচ্ছিক)", value="")

        n1, n2, n3, n4 = st.columns(4)
        with n1:
            total = st.number_input("মোট নম্বর", min_value=0, value=int(current["total"]))
        with n2:
            written = st.number_input("লিখিত (সর্বোচ্চ)", min_value=0, value=int(current["written"]))
            written_pass = st.number_input("লিখিত পাস", min_value=0, value=int(current["written_pass"]))
        with n3:
            mcq = st.number_input("MCQ (সর্বোচ্চ)", min_value=0, value=int(current["mcq"]))
            mcq_pass = st.number_input("MCQ পাস", min_value=0, value=int(current["mcq_pass"]))
        with n4:
            practical = st.number_input("ব্যবহারিক (সর্বোচ্চ)", min_value=0, value=int(current["practical"]))
            practical_pass = st.number_input("ব্যবহারিক পাস", min_value=0, value=int(current["practical_pass"]))
        practical_optional = st.checkbox("ব্যবহারিক ঐচ্ছিক", value=bool(current["practical_optional"]))
        st.caption(f"মোট ({written + mcq + practical}) | মোট পাস মার্ক (৩৩%): {parse_subject_config({'total': total})['total_pass']}")

        if st.form_submit_button("সেভ করুন"):
            if not cfg_subject.strip():
                st.error("বিষয়ের নাম দিতে হবে")
            else:
                key = cfg_subject.strip() if editing != "(নতুন)" else config_key(cfg_subject.strip(), cfg_class.strip(), cfg_session.strip())
                ok = service.store.save_subject_config(key, {
                    "total": total,
                    "written": written,
                    "writtenPass": written_pass,
                    "mcq": mcq,
                    "mcqPass": mcq_pass,
                    "practical": practical,
                    "practicalPass": practical_pass,
                    "practicalOptional": practical_optional,
                })
                if ok:
                    st.success(f"{key} কনফিগারেশন সেভ করা হয়েছে")
                    st.rerun()
                else:
                    st.error("সেভ করতে সমস্যা হয়েছে")

    if editing != "(নতুন)" and st.button("কনফিগারেশন মুছুন"):
        if service.store.delete_subject_config(editing):
            st.success(f"{editing} কনফিগারেশন মুছে ফেলা হয়েছে")
            st.rerun()
        else:
            st.error("ডিলিট করতে সমস্যা হয়েছে")

    st.subheader("শ্রেণি → বিষয় ম্যাপিং")
    with st.form("class_mapping_form"):
        map_class = st.text_input("শ্রেণি", value=class_name)
        map_subjects = st.text_area(
            "বিষয়সমূহ (প্রতি লাইনে একটি)",
            value="\n".join(class_subjects.get(class_name, [])),
        )
        if st.form_submit_button("ম্যাপিং সেভ করুন"):
            if not map_class.strip():
                st.error("শ্রেণি দিতে হবে")
            elif service.store.save_class_subjects(map_class.strip(), map_subjects.splitlines()):
                st.success(f"{map_class} শ্রেণির জন্য ম্যাপিং সেভ করা হয়েছে")
                st.rerun()
            else:
                st.error("ম্যাপিং সেভ করতে সমস্যা হয়েছে")
# =========================

# Saved exams
# =========================
with tab_exams:
    st.subheader("বর্তমান ফলাফল সংরক্ষণ")
    with st.form("save_exam_form", clear_on_submit=True):
        exam_name = st.text_input("পরীক্ষার নাম", value=st.session_state["exam_name"])
        exam_date = st.date_input("তারিখ", value=None)
        if st.form_submit_button("সংরক্ষণ করুন"):
            if not records:
                st.error("সংরক্ষণ করার মতো কোনো ডেটা নেই!")
            elif not exam_name.strip():
                st.error("পরীক্ষার নাম দিতে হবে")
            else:
                exam = build_exam(exam_name, subject, records, configs, class_name, session, exam_date)
                doc_id = service.store.save_exam(exam)
                if doc_id:
                    st.session_state["exam_name"] = exam_name.strip()
                    st.success("পরীক্ষার ফলাফল সফলভাবে সংরক্ষণ করা হয়েছে!")
                else:
                    st.error("পরীক্ষা সেভ করতে সমস্যা")

    exams = service.store.get_saved_exams()
    st.subheader(f"সংরক্ষিত পরীক্ষা ({len(exams)})")
    if exams:
        st.dataframe(pd.DataFrame([
            {
                "ID": e["docId"],
                "পরীক্ষা": e.get("name", ""),
                "বিষয়": e.get("subject", ""),
                "শ্রেণি": e.get("class", ""),
                "সেশন": e.get("session", ""),
                "শিক্ষার্থী": e.get("studentCount", 0),
                "পাস": (e.get("stats") or {}).get("passed_students", 0),
                "ফেল": (e.get("stats") or {}).get("failed_students", 0),
                "তারিখ": e.get("date") or e.get("createdAt", ""),
            }
            for e in exams
        ]), width="stretch", hide_index=True)

        chosen = st.selectbox("পরীক্ষা নির্বাচন", [e["docId"] for e in exams])
        exam = next(e for e in exams if e["docId"] == chosen)
        b1, b2, b3 = st.columns(3)
        with b1:
            if st.button("লোড করুন"):
                st.session_state["records"] = exam.get("studentData") or []
                st.session_state["duplicates"] = []
                st.session_state.update({
                    "subject": exam.get("subject", ""),
                    "class_name": exam.get("class", ""),
                    "session": exam.get("session", ""),
                    "exam_name": exam.get("name", ""),
                })
                service.store.update_settings({"currentExam": chosen})
                st.rerun()
        with b2:
            if st.button("পরিসংখ্যান পুনর্গণনা"):
                refreshed = recompute_exam_stats(exam, configs)
                if service.store.update_exam(chosen, {"stats": refreshed["stats"], "config_key": refreshed["config_key"]}):
                    st.success("পরিসংখ্যান হালনাগাদ হয়েছে")
                    st.rerun()
        with b3:
            if st.button("মুছুন"):
                if service.store.delete_exam(chosen):
                    st.rerun()
                else:
                    st.error("পরীক্ষা মুছতে সমস্যা")
# =========================

# Student history
# =========================
with tab_history:
    exams = service.store.get_saved_exams()
    query = st.text_input("রোল বা নাম", value="")
    candidates = search_candidates(exams, query)
    if query and not candidates:
        st.info("কোনো শিক্ষার্থী পাওয়া যায়নি")

    if candidates:
        candidates = sort_students(candidates, "id", "roll-asc")
        pick = st.selectbox(
            "শিক্ষার্থী",
            range(len(candidates)),
            format_func=lambda i: f"{candidates[i]['id']} - {candidates[i]['name']} ({GROUP_NAMES.get(candidates[i]['group'], candidates[i]['group'])})",
        )
        student = candidates[pick]
        history = student_history(exams, student["id"], student["group"])

        h1, h2, h3, h4 = st.columns(4)
        with h1:
            sessions = [ALL] + sorted({h.get("session") or "N/A" for h in history})
            h_session = st.selectbox("সেশন", sessions)
        with h2:
            subjects = [ALL] + sorted({h.get("subject") for h in history if h.get("subject")})
            h_subject = st.selectbox("বিষয়", subjects)
        with h3:
            exam_names = [ALL] + list(dict.fromkeys(h.get("examName") for h in history))
            h_exam = st.selectbox("পরীক্ষা", exam_names)
        with h4:
            h_criteria = st.selectbox("স্কোর", list(CRITERIA.keys()), format_func=lambda c: CRITERIA[c], key="history_criteria")
        max_marks = st.number_input("সর্বোচ্চ নম্বর", min_value=1, value=100)

        if h_exam != ALL:
            entries = exam_subject_entries(exams, h_exam, student["id"], student["group"], h_subject)
            label_key = "subject"
            pass_mark = max_marks * 0.33
        else:
            entries = filter_history(history, h_session, h_subject)
            label_key = "examName"
            key = find_config(configs, h_subject if h_subject != ALL else subject, student.get("class"), student.get("session"))
            pass_mark = history_pass_mark(configs.get(key) if key else None, h_criteria, max_marks)

        if entries:
            chart_df = pd.DataFrame({
                "Exam": [e.get(label_key) for e in entries],
                CRITERIA[h_criteria]: [e.get(h_criteria) or 0 for e in entries],
                "Pass mark": [pass_mark] * len(entries),
            }).set_index("Exam")
            st.line_chart(chart_df)
            st.dataframe(pd.DataFrame([
                {
                    "পরীক্ষা": e.get("examName"),
                    "বিষয়": e.get("subject"),
                    "লিখিত": e.get("written"),
                    "MCQ": e.get("mcq"),
                    "ব্যবহারিক": e.get("practical"),
                    "মোট": e.get("total"),
                    "গ্রেড": e.get("grade", ""),
                }
                for e in entries
            ]), width="stretch", hide_index=True)
        else:
            st.info("নির্বাচিত ফিল্টারে কোনো ফলাফল নেই")
