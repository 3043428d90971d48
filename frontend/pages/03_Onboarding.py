"""Five-step profile wizard shown after the first login."""

import streamlit as st
from auth import auth, error_detail

STEPS = ["Welcome", "Travel Style", "Interests", "Preferences", "Complete"]
INTERESTS = [
    "culture", "food", "adventure", "relaxation", "nightlife", "shopping",
    "nature", "art", "photography", "local-life", "luxury", "family",
    "romance", "business", "spiritual", "beach",
]
ACCOMMODATION = ["hotel", "hostel", "apartment", "resort", "boutique", "camping"]
TRANSPORT = ["walking", "public-transit", "car", "bike", "taxi", "train"]
DIETARY = ["vegetarian", "vegan", "gluten-free", "halal", "kosher", "dairy-free"]

st.set_page_config(page_title="Welcome - Terra Voyage", page_icon="🧭")
auth.require_auth()

if "wizard" not in st.session_state:
    st.session_state.wizard = {"step": 1, "data": {}}
wizard = st.session_state.wizard
data = wizard["data"]

step = wizard["step"]
st.title(f"🧭 {STEPS[step - 1]}")
st.progress(step / len(STEPS), text=f"Step {step} of {len(STEPS)}")


def go(to: int):
    wizard["step"] = to
    st.rerun()


if step == 1:
    with st.form("step1"):
        display_name = st.text_input("Display name *", value=data.get("display_name", ""))
        location = st.text_input("Home city", value=data.get("location") or "")
        bio = st.text_area("About you", value=data.get("bio") or "", max_chars=500)
        if st.form_submit_button("Next →"):
            if len(display_name.strip()) < 2:
                st.error("Display name needs at least 2 characters")
            else:
                data.update(display_name=display_name.strip(), location=location or None, bio=bio or None)
                go(2)

elif step == 2:
    with st.form("step2"):
        styles = ["adventure", "luxury", "budget", "cultural", "relaxation", "mixed"]
        travel_style = st.radio("Travel style", styles, index=styles.index(data.get("travel_style", "mixed")))
        paces = ["slow", "moderate", "fast"]
        pace = st.radio("Pace", paces, index=paces.index(data.get("pace", "moderate")), horizontal=True)
        back, forward = st.columns(2)
        if back.form_submit_button("← Back"):
            go(1)
        if forward.form_submit_button("Next →"):
            data.update(travel_style=travel_style, pace=pace)
            go(3)

elif step == 3:
    with st.form("step3"):
        interests = st.multiselect("Pick at least three interests", INTERESTS, default=data.get("interests", []))
        dietary = st.multiselect("Dietary restrictions", DIETARY, default=data.get("dietary_restrictions", []))
        back, forward = st.columns(2)
        if back.form_submit_button("← Back"):
            go(2)
        if forward.form_submit_button("Next →"):
            if len(interests) < 3:
                st.error("Please choose at least three interests")
            else:
                data.update(interests=interests, dietary_restrictions=dietary)
                go(4)

elif step == 4:
    with st.form("step4"):
        accommodation = st.multiselect("Where do you like to stay?", ACCOMMODATION, default=data.get("accommodation_type", ["hotel"]))
        transport = st.multiselect("How do you get around?", TRANSPORT, default=data.get("transport_preferences", ["walking"]))
        accessibility = st.selectbox("Mobility", ["full", "limited", "wheelchair", "none"])
        col1, col2, col3 = st.columns(3)
        currency = col1.selectbox("Currency", ["USD", "EUR", "GBP", "CAD", "AUD", "JPY"])
        unit = col2.selectbox("Units", ["metric", "imperial"])
        language = col3.selectbox("Language", ["en", "es", "fr", "de", "it", "pt"])
        profile_public = st.checkbox("Public profile", value=data.get("profile_public", False))
        allow_marketing = st.checkbox("Send me travel deals", value=data.get("allow_marketing", False))
        back, forward = st.columns(2)
        if back.form_submit_button("← Back"):
            go(3)
        if forward.form_submit_button("Review →"):
            if not accommodation or not transport:
                st.error("Choose at least one accommodation and one transport option")
            else:
                data.update(
                    accommodation_type=accommodation,
                    transport_preferences=transport,
                    accessibility=accessibility,
                    currency=currency,
                    measurement_unit=unit,
                    language=language,
                    profile_public=profile_public,
                    allow_marketing=allow_marketing,
                )
                go(5)

else:
    st.json(data)
    back, save = st.columns(2)
    if back.button("← Back"):
        go(4)
    if save.button("Save profile", type="primary"):
        response = auth.request("POST", "/user/onboarding", json=data)
        if response.status_code == 200:
            st.session_state.current_user["onboarding_completed"] = True
            st.session_state.pop("wizard")
            st.success("Profile saved")
            st.switch_page("pages/01_My_Trips.py")
        else:
            st.error(error_detail(response))
