# Run from project root: streamlit run swasth/ui.py
# UI talks to backend API (auth, profile, chat, recipes, progress). The Gemini key never reaches the browser.

import os
import sys
from pathlib import Path

# Ensure project root is on path (Streamlit may run with cwd != project root)
_root_from_file = Path(__file__).resolve().parent.parent
_cwd = os.getcwd()
for _root in (_root_from_file, _cwd):
    _root = str(_root)
    if _root not in sys.path:
        sys.path.insert(0, _root)

import streamlit as st
import requests

from swasth.ui_state import (
    AppState,
    ChatAnswered,
    ChatSent,
    Failed,
    LoggedIn,
    LoggedOut,
    Navigate,
    ProfileSaved,
    pending_query,
    reduce,
    split_items,
    user_context,
)

# Backend config
API_BASE = os.environ.get("API_BASE", "http://localhost:8000")

if "app_state" not in st.session_state:
    st.session_state.app_state = AppState()


def state() -> AppState:
    return st.session_state.app_state


def dispatch(action: object) -> None:
    st.session_state.app_state = reduce(state(), action)
    st.rerun()


def _headers() -> dict:
    return {"x-auth-token": state().token or ""}


def _error_detail(r: requests.Response) -> str:
    try:
        return r.json().get("detail") or r.text[:200]
    except ValueError:
        return r.text[:200]


def fetch_profile(token: str) -> dict | None:
    try:
        r = requests.get(f"{API_BASE}/api/user/profile", headers={"x-auth-token": token}, timeout=10)
    except requests.RequestException:
        return None
    return r.json() if r.ok else None


def _choice(label: str, options: list[str], current: str | None) -> str:
    """Selectbox preselected on the stored value."""
    index = options.index(current) if current in options else 0
    return st.selectbox(label, options, index=index)


# --- Pages ---

def auth_page(register: bool) -> None:
    st.title("Swasth Bharat")
    st.caption("Create an account" if register else "Log in to your account")
    with st.form("auth_form"):
        name = st.text_input("Name") if register else ""
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Register" if register else "Login")
    if submitted:
        endpoint = "register" if register else "login"
        payload = {"email": email, "password": password}
        if register:
            payload["name"] = name
        try:
            r = requests.post(f"{API_BASE}/api/auth/{endpoint}", json=payload, timeout=10)
        except requests.RequestException:
            st.error("Network error or server unavailable. Please check the backend server.")
            return
        if not r.ok:
            st.error(f"Authentication failed: {_error_detail(r)}")
            return
        token = r.json()["token"]
        user = fetch_profile(token)
        if user is None:
            st.error("Failed to fetch user profile.")
            return
        dispatch(LoggedIn(token=token, user=user))
    other = "login" if register else "register"
    if st.button(f"Go to {other}", key="switch_auth"):
        dispatch(Navigate("auth" if register else "register"))


def home_page() -> None:
    user = state().user
    st.title(f"Namaste, {user.get('name') or 'friend'}!")
    profile = user.get("profile") or {}
    cols = st.columns(3)
    cols[0].metric("Weight", f"{profile.get('weight') or '-'} kg")
    cols[1].metric("Goal", profile.get("goal") or "General Health")
    cols[2].metric("Region", profile.get("region") or "All India")
    if not profile.get("weight") or not profile.get("height"):
        st.info("Complete your profile for personalised advice.")


def profile_page() -> None:
    user = state().user
    profile = user.get("profile") or {}
    try:
        r = requests.get(f"{API_BASE}/api/regions", timeout=10)
        regions = r.json().get("regions", []) if r.ok else []
    except requests.RequestException:
        regions = []
    st.title("My Health Profile")
    with st.form("profile_form"):
        name = st.text_input("Name", value=user.get("name") or "")
        age = st.number_input("Age", min_value=0, max_value=120, value=int(profile.get("age") or 0))
        weight = st.number_input("Weight (kg)", min_value=0.0, value=float(profile.get("weight") or 0.0))
        height = st.number_input("Height (cm)", min_value=0.0, value=float(profile.get("height") or 0.0))
        target = st.number_input("Target weight (kg)", min_value=0.0, value=float(profile.get("targetWeight") or 0.0))
        region = _choice("Region", [""] + regions, profile.get("region"))
        goal = st.text_input("Goal", value=profile.get("goal") or "")
        diet = _choice("Diet preference", ["", "Vegetarian", "Vegan", "Non-Vegetarian"], profile.get("dietPreference"))
        activity = _choice("Activity level", ["", "Sedentary", "Moderate", "Active"], profile.get("activityLevel"))
        health_issues = st.text_input("Health issues (comma separated)", value=", ".join(profile.get("healthIssues") or []))
        allergies = st.text_input("Allergies (comma separated)", value=", ".join(profile.get("allergies") or []))
        submitted = st.form_submit_button("Save profile")
    if submitted:
        payload = {
            "name": name,
            "age": age or None,
            "weight": weight or None,
            "height": height or None,
            "targetWeight": target or None,
            "region": region,
            "goal": goal,
            "dietPreference": diet,
            "activityLevel": activity,
            "healthIssues": split_items(health_issues),
            "allergies": split_items(allergies),
        }
        try:
            r = requests.put(f"{API_BASE}/api/user/profile", json=payload, headers=_headers(), timeout=10)
        except requests.RequestException as e:
            st.error(f"Request failed: {e}")
            return
        if r.ok:
            dispatch(ProfileSaved(user=r.json()))
        else:
            st.error(f"Profile update failed: {_error_detail(r)}")


def chat_page() -> None:
    st.title("AI Nutrition Chat")
    st.caption("Powered by Gemini: advice grounded in Indian Food Composition Tables and ICMR-NIN Guidelines.")
    for msg in state().messages:
        with st.chat_message("user" if msg.sender == "user" else "assistant"):
            if msg.ok:
                st.markdown(msg.text)
            else:
                st.warning(msg.text)
            if msg.sources:
                st.caption("Sources:")
                for s in msg.sources:
                    st.caption(f"  • [{s.get('title')}]({s.get('uri')})")

    query = pending_query(state())
    if query:
        with st.chat_message("assistant"):
            st.caption("Thinking...")
        payload = {"userQuery": query, "userData": user_context(state().user)}
        try:
            r = requests.post(f"{API_BASE}/api/gemini/chat", json=payload, headers=_headers(), timeout=120)
            data = r.json()
            if "text" in data:
                dispatch(ChatAnswered(text=data["text"], sources=tuple(data.get("sources") or ()), ok=data.get("ok", r.ok)))
            else:
                dispatch(Failed(message=_error_detail(r)))
        except (requests.RequestException, ValueError) as e:
            dispatch(ChatAnswered(text=f"Connection failed: {e}", ok=False))

    if prompt := st.chat_input("Ask about meals, nutrients or your health goals"):
        dispatch(ChatSent(text=prompt))


def recipes_page() -> None:
    profile = state().user.get("profile") or {}
    st.title("Regional Recipes")
    region = profile.get("region") or ""
    diet = profile.get("dietPreference") or ""
    st.caption(f"Tailored to {region or 'all regions'} and {diet or 'any'} preference.")
    q = st.text_input("Search recipes (e.g., Dal, Sambar)")
    try:
        r = requests.get(f"{API_BASE}/api/recipes", params={"region": region, "diet": diet, "q": q}, timeout=10)
        recipes = r.json().get("recipes", []) if r.ok else []
    except requests.RequestException:
        recipes = []
        st.caption("Backend not reachable. Start the API first.")
    if not recipes:
        st.caption("No recipes match.")
    for recipe in recipes:
        st.markdown(f"**{recipe['name']}** · {recipe['region']} Indian · {recipe['diet']} · ~{recipe['kcal']} Kcal")


def progress_page() -> None:
    st.title("Track My Progress")
    try:
        r = requests.get(f"{API_BASE}/api/user/progress", headers=_headers(), timeout=10)
    except requests.RequestException as e:
        st.error(f"Request failed: {e}")
        return
    if not r.ok:
        st.error(f"Could not load progress: {_error_detail(r)}")
        return
    data = r.json()
    cols = st.columns(3)
    cols[0].metric("Current Weight", f"{data.get('currentWeight') or '-'} kg")
    bmi = data.get("bmi")
    cols[1].metric("BMI", bmi if bmi is not None else "-", data.get("bmiCategory") or None, delta_color="off")
    to_target = data.get("kgToTarget")
    cols[2].metric("To Target", f"{to_target} kg" if to_target is not None else "-")


# --- Layout ---

current = state()
if current.logged_in:
    with st.sidebar:
        for page, label in (
            ("home", "Home"),
            ("profile", "Profile"),
            ("chat", "AI Chat"),
            ("recipes", "Recipes"),
            ("progress", "Progress"),
        ):
            if st.button(label, key=f"nav_{page}"):
                dispatch(Navigate(page))
        if st.button("Logout", key="logout"):
            dispatch(LoggedOut())

if current.error:
    st.error(current.error)

if current.page in ("auth", "register"):
    auth_page(register=current.page == "register")
elif current.page == "profile":
    profile_page()
elif current.page == "chat":
    chat_page()
elif current.page == "recipes":
    recipes_page()
elif current.page == "progress":
    progress_page()
else:
    home_page()
