import os, requests, streamlit as st

API = os.getenv("API_URL", "http://localhost:8080")

st.set_page_config(page_title="QueryChart UI", layout="centered")
st.title("QueryChart — Ask your database")

with st.form("ask"):
    prompt = st.text_area("What do you want to know?", placeholder="e.g., average salary per department")
    intent = st.text_input("Chart intent (optional)", placeholder="e.g., compare departments")
    submitted = st.form_submit_button("Ask")

if submitted and prompt.strip():
    with st.spinner("Generating query..."):
        r = requests.post(f"{API}/generate-query", json={"prompt": prompt, "intent": intent or None}, timeout=300)
    body = r.json()
    if r.status_code != 200:
        st.error(body.get("error", f"HTTP {r.status_code}"))
    else:
        st.code(body["sql"], language="sql")
        st.dataframe(body["data"], use_container_width=True)

        chart = body["chartConfig"]
        options = body["chartOptions"]
        st.subheader(options["plugins"]["title"]["text"] or "Chart")
        labels = chart.get("labels", [])
        values = chart["datasets"][0]["data"]
        if len(labels) == len(values):
            series = {str(l): v for l, v in zip(labels, values)}
            st.bar_chart(series)
        else:
            st.warning("Chart labels and values have different lengths.")
        st.caption(f"Suggested views: {', '.join(body['graphTypes'])}")
