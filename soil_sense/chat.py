"""
AgroBot: agricultural chat assistant grounded in the live sensor readings.

Calls an OpenAI-compatible chat-completions endpoint when an API key is
configured, or answers from canned keyword-matched guides in demo mode.

Usage:
    from soil_sense.chat import AgroBot, ChatSettings
    bot = AgroBot(store, ChatSettings(store))
    result = bot.chat("How do I fix low nitrogen?")
"""
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from .config import CHAT, STORAGE, DEFAULT_CROP
from .history import HistoryStore
from .recommendations import format_value
from .storage import KeyValueStore

log = logging.getLogger(__name__)


class ChatError(RuntimeError):
    """User-facing failure of a chat request."""


# ─────────────────────────────────────────────────────────────────────────────
# SENSOR CONTEXT
# ─────────────────────────────────────────────────────────────────────────────

def build_sensor_context(store: KeyValueStore) -> str:
    """Summarise the latest stored reading and crop for the system prompt."""
    try:
        latest = HistoryStore(store).latest()
        crop = store.get_item(STORAGE.crop_key) or DEFAULT_CROP
    except Exception as e:
        log.warning(f"Could not read sensor context: {e}")
        return "The farmer is using the SoilSense soil monitoring system."

    if latest is None:
        return f"The farmer is using the SoilSense system, currently monitoring {crop} crop."

    pump = "ON (irrigating)" if latest.pump_on else "OFF"
    return (
        "The farmer's current LIVE SENSOR READINGS from their soil monitoring system are:\n"
        f"- Crop: {crop.capitalize()}\n"
        f"- Soil Moisture: {format_value(latest.moisture, 1, '%')}\n"
        f"- pH Level: {format_value(latest.ph, 2)}\n"
        f"- Nitrogen (N): {format_value(latest.n, 1, ' mg/kg')}\n"
        f"- Phosphorus (P): {format_value(latest.p, 1, ' mg/kg')}\n"
        f"- Potassium (K): {format_value(latest.k, 1, ' mg/kg')}\n"
        f"- Temperature: {format_value(latest.temperature, 1, '°C')}\n"
        f"- Humidity: {format_value(latest.humidity, 1, '%')}\n"
        f"- Water pump status: {pump}\n"
        "Use this real data in your answers when relevant."
    )


SYSTEM_PROMPT = """You are AgroBot, a friendly and knowledgeable agricultural expert assistant integrated into the SoilSense smart soil monitoring system. You have extensive expertise in:

- Botany, crop science, and agronomy
- Soil health: pH, NPK nutrients, moisture, and microbiology
- Pest management and integrated pest control (IPM)
- Crop diseases: fungal, bacterial, and viral
- Irrigation and water management
- Seasonal planting calendars (especially for Indian agriculture)
- Fertilizer management: organic and chemical
- Specific crops: Rice, Wheat, Tomato, Cotton, Maize, Soybean, and many more

PERSONALITY:
- Friendly, encouraging, and patient, like a trusted village agronomist
- Use simple, clear language. Avoid unnecessary jargon
- Give practical, actionable advice farmers can apply immediately
- Use emojis sparingly to make responses more engaging
- Format responses with **bold** for key terms and bullet points for lists

IMPORTANT RULES:
- Always give ACCURATE information based on established agricultural science
- When sensor data is available, reference it in your response (e.g., "Your current pH is 6.2, which is...")
- Keep responses concise but complete, avoid very long walls of text
- If you don't know something, say so and suggest consulting a local agronomist
- Focus on practical, low-cost solutions accessible to small farmers

CURRENT CONTEXT:
{context}"""


def build_system_prompt(store: KeyValueStore) -> str:
    return SYSTEM_PROMPT.format(context=build_sensor_context(store))


# ─────────────────────────────────────────────────────────────────────────────
# DEMO MODE
# ─────────────────────────────────────────────────────────────────────────────

TOMATO_GUIDE = """**Growing Tomatoes – Best Practices 🍅**

Tomatoes thrive with these care steps:

• **Sunlight:** 6–8 hours of direct sun daily
• **Soil pH:** Keep between 5.8–7.0 (slightly acidic)
• **Watering:** Deep watering 2–3 times per week. Avoid wetting leaves
• **Fertilizer:** Apply balanced NPK (10-10-10) monthly; switch to low-N formula after flowering
• **Support:** Use stakes or cages when plants reach 30cm tall
• **Pest Watch:** Check regularly for *aphids*, *whiteflies*, and *hornworms*

💡 **Tip:** Pinch off suckers (small shoots between stem and branch) to improve fruit yield!"""

PEST_GUIDE = """**Aphid Identification & Treatment 🐛**

**How to identify aphids:**
• Tiny soft-bodied insects (green, yellow, black, or white)
• Found in clusters under leaves and on new stems
• Leaves may curl, yellow, or look sticky (honeydew residue)

**Organic treatments:**
• **Neem oil spray** – Mix 2ml/L water, spray every 7 days
• **Soap spray** – 5ml dish soap per liter, spray undersides of leaves
• **Ladybugs** – Natural predators, encourage in the garden

**Chemical treatments (if severe):**
• Apply *imidacloprid* or *pyrethrin*-based insecticide
• Rotate chemicals to prevent resistance

💡 **Prevention:** Avoid over-fertilizing with nitrogen; aphids love lush, soft new growth!"""

SEASON_GUIDE = """**Seasonal Planting Guide for India 🌾**

**Kharif Season (June–November) – Monsoon Crops:**
• Rice, Maize, Cotton, Soybean, Groundnut
• Requires 700–1200mm rainfall

**Rabi Season (November–April) – Winter Crops:**
• Wheat, Mustard, Gram, Potato, Peas
• Requires cool temperatures (10–25°C)

**Zaid Season (March–June) – Summer Crops:**
• Watermelon, Cucumber, Pumpkin, Sunflower
• Requires high temperatures and irrigation"""

PH_GUIDE = """**Soil pH Management 🧪**

**What is soil pH?**
Soil pH measures how acidic or alkaline your soil is on a scale of 0–14. Most crops prefer 6–7 (slightly acidic to neutral).

**If soil is too acidic (pH < 6):**
• Apply *agricultural lime* (calcium carbonate) – 1–2 tons/hectare
• Use *wood ash* as an organic alternative
• Wait 2–4 weeks before re-testing

**If soil is too alkaline (pH > 7.5):**
• Apply *elemental sulfur* – 200–500kg/hectare
• Use *acidic fertilizers* like ammonium sulfate
• Incorporate organic matter (compost)

💡 **Your SoilSense dashboard** shows live pH readings; check the Dashboard tab for your current soil pH!"""

NPK_GUIDE = """**NPK Fertilizer Guide 🌿**

**N – Nitrogen:** Promotes leafy green growth
• Deficiency signs: Yellow leaves, stunted growth
• Sources: *Urea (46-0-0)*, Ammonium Nitrate, Compost
• Apply: Before sowing & 30 days after germination

**P – Phosphorus:** Strengthens roots and flowers
• Deficiency signs: Purple-tinged leaves, poor root growth
• Sources: *DAP (18-46-0)*, Superphosphate, Bone meal
• Apply: Mix into soil before planting

**K – Potassium:** Improves disease resistance and fruit quality
• Deficiency signs: Brown leaf edges, dry tips
• Sources: *MOP (0-0-60)*, Potassium sulfate
• Apply: Split doses every 30 days

💡 **SoilSense tip:** Your NPK sensor shows real-time levels; check the Recommendations page for crop-specific fertilizer advice!"""

IRRIGATION_GUIDE = """**Soil Moisture & Irrigation Guide 💧**

**Ideal moisture levels by crop:**
• *Rice:* 65–85% | *Wheat:* 45–65% | *Tomato:* 55–75%
• *Cotton:* 40–65% | *Maize:* 50–75%

**Irrigation methods:**
• **Drip irrigation** – Most efficient (90%+ water use), best for vegetables
• **Sprinkler irrigation** – Good for wheat and groundnuts
• **Flood irrigation** – Traditional, used for rice

**Signs of over-watering:**
• Yellowing leaves, root rot, fungal growth

**Signs of under-watering:**
• Wilting, dry cracked soil, brown edges on leaves

💡 **SoilSense auto-irrigation** activates the water pump when moisture drops below your crop's minimum threshold!"""

DISEASE_GUIDE = """**Crop Disease Management 🔬**

**Common fungal diseases:**
• *Leaf blight* – Brown irregular patches. Apply mancozeb fungicide
• *Powdery mildew* – White powdery coating. Apply sulfur-based spray
• *Root rot* – Wilting in moist soil. Improve drainage + apply fungicide

**Common bacterial diseases:**
• *Bacterial wilt* – Sudden wilting. Remove infected plants immediately
• *Leaf spot* – Small water-soaked lesions. Apply copper-based bactericide

**Viral diseases:**
• *Mosaic virus* – Mottled yellow/green leaves. No cure, remove the plant
• Transmitted by aphids and whiteflies, so control insect vectors

**Prevention tips:**
• Crop rotation every season
• Avoid working in wet fields (spreads disease)
• Destroy infected plant debris
• Use disease-resistant seed varieties"""

RICE_GUIDE = """**Rice Cultivation Guide 🌾**

**Ideal conditions:**
• Temperature: 20–38°C | pH: 5.5–7.0 | Moisture: 65–85%
• Rainfall: 1000–2000mm (or irrigation equivalent)

**Key stages:**
1. *Nursery (0–25 days):* Sow seeds in wet seedbeds
2. *Transplanting (25–30 days):* Move 20cm seedlings to main field
3. *Vegetative (30–60 days):* Maintain 5cm standing water
4. *Reproductive (60–90 days):* Reduce water, apply potassium
5. *Ripening (90–120 days):* Drain field 2 weeks before harvest

**Common pests:** Brown planthopper, Stem borer, Leaf folder
**Common diseases:** Blast, Sheath blight, Bacterial leaf blight

💡 **NPK for Rice:** Apply Urea (Nitrogen) in 3 splits: at transplanting, tillering, and panicle initiation"""

WHEAT_GUIDE = """**Wheat Cultivation Guide 🌿**

**Ideal conditions:**
• Temperature: 12–28°C | pH: 6.0–7.5 | Moisture: 45–65%
• Best sown in *November–December* (north India)

**Fertilizer schedule:**
• *Basal dose:* DAP 100kg/ha + MOP 50kg/ha before sowing
• *1st top dressing (25–30 days):* Urea 75kg/ha
• *2nd top dressing (50–60 days):* Urea 75kg/ha

**Irrigation schedule:**
1. Crown root initiation (20–25 days)
2. Tillering (40–45 days)
3. Jointing (60–65 days)
4. Flowering (80–85 days)
5. Grain filling (100–105 days)

**Key diseases:** Yellow rust, Loose smut, Karnal bunt

💡 **Harvest:** When grain moisture drops to 12–14%, typically March–April"""

HELLO_GUIDE = """**Hello! I'm AgroBot 🌱**

I'm your agricultural expert assistant. I can help you with:

• 🌱 **Crop growing tips** (tomato, rice, wheat, cotton, maize...)
• 🐛 **Pest identification & treatment** (aphids, whiteflies, borers...)
• 🧪 **Soil health** (pH, NPK, moisture management)
• 💧 **Irrigation advice** based on your crop type
• 🌤️ **Seasonal planting guidance**
• 🔬 **Disease diagnosis & treatment**

Just ask me anything about your farm! For example:
*"What are the best practices for growing tomatoes?"*
*"How do I treat aphids on my plants?"*
*"What crops should I plant this month?"*"""

# Ordered keyword rules; the first match wins
DEMO_RULES: List[tuple] = [
    (("tomato",), TOMATO_GUIDE),
    (("aphid", "pest"), PEST_GUIDE),
    (("season", "plant", "month"), SEASON_GUIDE),
    (("ph", "acidic", "alkaline"), PH_GUIDE),
    (("nitrogen", "npk", "fertili"), NPK_GUIDE),
    (("moisture", "water", "irrig"), IRRIGATION_GUIDE),
    (("disease", "fungal", "blight"), DISEASE_GUIDE),
    (("rice",), RICE_GUIDE),
    (("wheat",), WHEAT_GUIDE),
]


def get_demo_response(question: str) -> str:
    q = question.lower()
    for keywords, answer in DEMO_RULES:
        if any(word in q for word in keywords):
            return answer
    return HELLO_GUIDE


# ─────────────────────────────────────────────────────────────────────────────
# SETTINGS
# ─────────────────────────────────────────────────────────────────────────────

class ChatSettings:
    """API key and demo-mode flag, persisted alongside the sensor data."""

    def __init__(self, store: KeyValueStore, default_key: str = CHAT.api_key):
        self.store = store
        self.default_key = default_key

    @property
    def api_key(self) -> str:
        return self.store.get_item(CHAT.key_store) or self.default_key or ""

    @property
    def demo_mode(self) -> bool:
        return self.store.get_item(CHAT.demo_store) == "true"

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self.demo_mode

    def save_key(self, api_key: str) -> None:
        api_key = api_key.strip()
        if not api_key.startswith("sk-"):
            raise ValueError('Please enter a valid OpenAI API key starting with "sk-"')
        self.store.set_item(CHAT.key_store, api_key)
        self.store.remove_item(CHAT.demo_store)

    def enable_demo(self) -> None:
        self.store.set_item(CHAT.demo_store, "true")
        self.store.remove_item(CHAT.key_store)
        self.default_key = ""


# ─────────────────────────────────────────────────────────────────────────────
# CHATBOT
# ─────────────────────────────────────────────────────────────────────────────

class AgroBot:
    """Context-aware chat assistant for the SoilSense dashboard."""

    def __init__(self, store: KeyValueStore, settings: Optional[ChatSettings] = None,
                 http_client: Optional[httpx.Client] = None,
                 demo_answer: Callable[[str], str] = get_demo_response):
        self.store = store
        self.settings = settings or ChatSettings(store)
        self.http_client = http_client
        self.demo_answer = demo_answer
        self.model = CHAT.model
        self.max_history = CHAT.max_history
        self.conversation_history: List[Dict[str, str]] = []

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }

    def _build_messages(self, user_message: str) -> List[Dict[str, str]]:
        """System prompt with live context, recent history, then the new message."""
        messages = [{"role": "system", "content": build_system_prompt(self.store)}]
        messages.extend(self.conversation_history[-self.max_history:])
        messages.append({"role": "user", "content": user_message})
        return messages

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self.http_client is not None:
            return self.http_client.post(CHAT.api_url, headers=self._get_headers(), json=payload)
        with httpx.Client(timeout=CHAT.timeout) as client:
            return client.post(CHAT.api_url, headers=self._get_headers(), json=payload)

    def _call_api(self, message: str) -> str:
        payload = {
            "model": self.model,
            "messages": self._build_messages(message),
            "max_tokens": CHAT.max_tokens,
            "temperature": CHAT.temperature,
        }
        try:
            response = self._post(payload)
        except httpx.HTTPError as e:
            log.error(f"Chat request failed: {e}")
            raise ChatError("Could not reach the AI service. Please try again.") from e

        if response.status_code == 401:
            raise ChatError("Invalid API key. Please check your OpenAI API key in settings.")
        if response.status_code == 429:
            raise ChatError("Rate limit reached. Please wait a moment and try again.")
        if response.is_error:
            try:
                detail = response.json().get("error", {}).get("message")
            except ValueError:
                detail = None
            log.error(f"Chat API error: {response.status_code} - {detail or response.text}")
            raise ChatError(detail or "OpenAI API error. Please try again.")

        data = response.json()
        try:
            return data["choices"][0]["message"]["content"] or "Sorry, I could not generate a response."
        except (KeyError, IndexError, TypeError):
            return "Sorry, I could not generate a response."

    def ask(self, message: str) -> str:
        """Answer one user message. Raises ChatError on API failure."""
        message = message.strip()
        if not message:
            raise ValueError("Message is empty")

        if self.settings.demo_mode or not self.settings.api_key:
            reply = self.demo_answer(message)
        else:
            reply = self._call_api(message)

        self.conversation_history.append({"role": "user", "content": message})
        self.conversation_history.append({"role": "assistant", "content": reply})
        return reply

    def chat(self, message: str) -> Dict[str, Any]:
        """Like ask(), but reports failures in the result instead of raising."""
        try:
            reply = self.ask(message)
        except (ChatError, ValueError) as e:
            return {"success": False, "error": str(e), "response": None}
        return {
            "success": True,
            "response": reply,
            "model": "demo" if self.settings.demo_mode or not self.settings.api_key else self.model,
        }

    def greeting(self) -> str:
        mode = " *(Demo Mode – add an API key in settings for full responses)*" if self.settings.demo_mode else ""
        return (
            f"**Welcome to AgroBot! 🌾**{mode}\n\n"
            "I'm your personal agricultural expert. I can help you with:\n\n"
            "• 🌱 Crop growing tips & best practices\n"
            "• 🐛 Pest identification & organic treatment\n"
            "• 🧪 Soil health – pH, NPK, and moisture\n"
            "• 💧 Irrigation advice for your crop\n"
            "• 🌤️ Seasonal planting guidance\n"
            "• 🔬 Crop disease diagnosis\n\n"
            "Your current sensors are live – I can see your real soil data! What would you like to know?"
        )

    def clear_history(self):
        """Clear conversation history."""
        self.conversation_history = []

    def get_history(self) -> List[Dict[str, str]]:
        return self.conversation_history.copy()
