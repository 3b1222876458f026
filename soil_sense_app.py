"""
SoilSense Dashboard - Live Soil Monitoring, Crop Advice & AgroBot Chat

Run with: streamlit run soil_sense_app.py
"""
import logging
import os
import sys
import time

import streamlit as st

# Add project paths
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from soil_sense.config import STORAGE, LIVE_FEED, LOG_LEVEL, LOG_FORMAT
from soil_sense.chat import AgroBot, ChatSettings
from soil_sense.profiles import get_profile
from soil_sense.recommendations import format_value
from soil_sense.service import SoilDataService
from soil_sense.storage import JsonFileStore

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

# ═══════════════════════════════════════════════════════════════════════════════
# PAGE CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

st.set_page_config(
    page_title="🌱 SoilSense",
    page_icon="🌱",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header { font-size: 2.3rem; color: #1B5E20; text-align: center; font-weight: bold; }
    .sub-header { text-align: center; color: #666; margin-bottom: 1.5rem; }
    .rec-critical { border-left: 5px solid #C62828; background: #FFEBEE; padding: .6rem 1rem; border-radius: 8px; margin-bottom: .4rem; }
    .rec-warning { border-left: 5px solid #F57C00; background: #FFF3E0; padding: .6rem 1rem; border-radius: 8px; margin-bottom: .4rem; }
    .rec-healthy { border-left: 5px solid #2E7D32; background: #E8F5E9; padding: .6rem 1rem; border-radius: 8px; margin-bottom: .4rem; }
    .tone-red { color: #C62828; font-weight: bold; }
    .tone-amber { color: #F57C00; font-weight: bold; }
    .tone-green { color: #2E7D32; font-weight: bold; }
</style>
""", unsafe_allow_html=True)

# ═══════════════════════════════════════════════════════════════════════════════
# SESSION STATE
# ═══════════════════════════════════════════════════════════════════════════════

@st.cache_resource
def get_service() -> SoilDataService:
    service = SoilDataService(JsonFileStore(STORAGE.path))
    service.seed_history()
    return service


service = get_service()

if 'bot' not in st.session_state:
    st.session_state.bot = AgroBot(service.store, ChatSettings(service.store))

if 'chat_history' not in st.session_state:
    st.session_state.chat_history = []

bot: AgroBot = st.session_state.bot


def badge(label: str, tone: str) -> str:
    return f'<span class="tone-{tone}">{label}</span>'

# ═══════════════════════════════════════════════════════════════════════════════
# SIDEBAR
# ═══════════════════════════════════════════════════════════════════════════════

with st.sidebar:
    st.header("🌾 Crop")
    crops = service.profiles()
    current = service.get_current_crop()
    crop = st.selectbox(
        "Monitored crop",
        options=list(crops),
        index=list(crops).index(current),
        format_func=lambda k: f"{crops[k].icon} {crops[k].name}",
    )
    if crop != current:
        service.set_current_crop(crop)

    st.header("📡 Live Feed")
    auto = st.toggle("Auto-refresh", value=False)
    interval_s = st.slider("Interval (s)", 1, 30, LIVE_FEED.refresh_seconds)
    if st.button("➡️ Next reading"):
        service.feed.tick()

    st.header("🔑 AgroBot")
    st.caption("Key is stored locally with your sensor history.")
    key_input = st.text_input("OpenAI API Key", type="password", placeholder="sk-proj-...")
    kcol1, kcol2 = st.columns(2)
    with kcol1:
        if st.button("✅ Save key"):
            try:
                bot.settings.save_key(key_input)
                st.success("Key saved")
            except ValueError as e:
                st.error(str(e))
    with kcol2:
        if st.button("🌱 Demo mode"):
            bot.settings.enable_demo()
            st.info("Demo mode enabled")

# ═══════════════════════════════════════════════════════════════════════════════
# HEADER
# ═══════════════════════════════════════════════════════════════════════════════

profile = get_profile(service.get_current_crop())
reading = service.latest_reading() or service.get_reading()

st.markdown('<div class="main-header">🌱 SoilSense Smart Soil Monitor</div>', unsafe_allow_html=True)
st.markdown(f'<div class="sub-header">{profile.icon} Monitoring {profile.name} · '
            f'last reading {reading.timestamp:%Y-%m-%d %H:%M:%S} UTC</div>', unsafe_allow_html=True)

tab1, tab2, tab3, tab4 = st.tabs(["📊 Dashboard", "💡 Recommendations", "📈 History", "🤖 AgroBot"])

# ═══════════════════════════════════════════════════════════════════════════════
# TAB 1: DASHBOARD
# ═══════════════════════════════════════════════════════════════════════════════

with tab1:
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        st.metric("💧 Soil Moisture", format_value(reading.moisture, 1, "%"),
                  help=f"Optimal {profile.moisture.min:g}–{profile.moisture.max:g}%")
        if reading.moisture is not None:
            st.markdown(badge(f"{service.moisture_color(reading.moisture, profile).title()} zone",
                              service.moisture_color(reading.moisture, profile)), unsafe_allow_html=True)
    with c2:
        st.metric("🧪 pH", format_value(reading.ph, 2))
        if reading.ph is not None:
            b = service.ph_category(reading.ph)
            st.markdown(badge(b.label, b.tone), unsafe_allow_html=True)
    with c3:
        st.metric("🌡️ Temperature", format_value(reading.temperature, 1, "°C"))
    with c4:
        st.metric("💨 Humidity", format_value(reading.humidity, 1, "%"))

    st.subheader("NPK (mg/kg)")
    ncol, pcol, kcol = st.columns(3)
    for col, name, label in ((ncol, "n", "Nitrogen (N)"), (pcol, "p", "Phosphorus (P)"), (kcol, "k", "Potassium (K)")):
        value = getattr(reading, name)
        with col:
            st.metric(label, format_value(value))
            if value is not None:
                b = service.npk_level(value)
                st.markdown(badge(b.label, b.tone), unsafe_allow_html=True)

    st.subheader("🚿 Irrigation")
    if reading.pump_on:
        st.success("Pump ON – irrigating")
    else:
        st.info("Pump OFF")
    if reading.last_watered:
        st.caption(f"Last watered {reading.last_watered:%Y-%m-%d %H:%M} UTC"
                   + (f" for {reading.last_water_duration} min" if reading.last_water_duration else ""))

# ═══════════════════════════════════════════════════════════════════════════════
# TAB 2: RECOMMENDATIONS
# ═══════════════════════════════════════════════════════════════════════════════

with tab2:
    recs = service.get_recommendations(reading, profile.key.value)
    alerts = service.get_alerts(reading, profile.key.value)
    st.metric("Active alerts", len(alerts))
    for rec in recs:
        st.markdown(
            f'<div class="rec-{rec.severity.value}">{rec.icon} <strong>{rec.category}</strong> – {rec.message}</div>',
            unsafe_allow_html=True,
        )

# ═══════════════════════════════════════════════════════════════════════════════
# TAB 3: HISTORY
# ═══════════════════════════════════════════════════════════════════════════════

with tab3:
    range_ = st.radio("Range", ["daily", "weekly", "monthly", "all"], horizontal=True)
    df = service.history.to_frame(range_)
    if df.empty:
        st.info("No readings in this range yet.")
    else:
        st.caption(f"{len(df)} readings")
        st.line_chart(df[["moisture", "temperature", "humidity"]])
        st.line_chart(df[["n", "p", "k"]])
        st.line_chart(df[["ph"]])
        with st.expander("📋 Raw data"):
            st.dataframe(df)

# ═══════════════════════════════════════════════════════════════════════════════
# TAB 4: AGROBOT
# ═══════════════════════════════════════════════════════════════════════════════

with tab4:
    st.caption(f"🌡️ Live sensors: {profile.name} · Moisture {format_value(reading.moisture, 0, '%')} · "
               f"pH {format_value(reading.ph, 1)} · Temp {format_value(reading.temperature, 1, '°C')}")

    if not bot.settings.configured:
        st.warning("Add an OpenAI API key or enable demo mode in the sidebar.")

    with st.chat_message("assistant", avatar="🌾"):
        st.markdown(bot.greeting())
    for msg in st.session_state.chat_history:
        with st.chat_message(msg["role"], avatar="🌾" if msg["role"] == "assistant" else "👨‍🌾"):
            st.markdown(msg["content"])

    qcol1, qcol2, qcol3, qcol4 = st.columns(4)
    quick = None
    with qcol1:
        if st.button("🌱 Soil Health"):
            quick = "How do I improve soil health?"
    with qcol2:
        if st.button("🐛 Pest Control"):
            quick = "How to treat aphids on my plants?"
    with qcol3:
        if st.button("💧 Irrigation"):
            quick = "How often should I water my crop?"
    with qcol4:
        if st.button("🗑️ Clear Chat"):
            st.session_state.chat_history = []
            bot.clear_history()
            st.rerun()

    message = st.chat_input("Ask anything about crops, soil, pests...") or quick
    if message:
        st.session_state.chat_history.append({"role": "user", "content": message})
        with st.spinner("🤖 Thinking..."):
            result = bot.chat(message)
        reply = result["response"] if result["success"] else f"⚠️ **Error:** {result['error']}"
        st.session_state.chat_history.append({"role": "assistant", "content": reply})
        st.rerun()

# ═══════════════════════════════════════════════════════════════════════════════
# AUTO REFRESH
# ═══════════════════════════════════════════════════════════════════════════════

if auto:
    time.sleep(interval_s)
    service.feed.tick()
    st.rerun()
