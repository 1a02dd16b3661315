# streamlit_app/app.py
import streamlit as st
import requests, os
import matplotlib.pyplot as plt
import pandas as pd

API_BASE = os.environ.get("API_BASE", "http://localhost:8000")
WASTE_TYPES = ["Plastic", "Paper", "Glass", "Metal"]

st.set_page_config(page_title="EcoTrack Rewards", layout="wide", initial_sidebar_state="expanded")

# -------------------------------
# Helpers
# -------------------------------
def _headers():
    token = st.session_state.get("token")
    return {"Authorization": f"Bearer {token}"} if token else {}

def _message(resp):
    try:
        return resp.json().get("message") or resp.text
    except ValueError:
        return resp.text

def api_get(path: str):
    """GET against the backend. Returns (status_code, json body or None)."""
    url = API_BASE.rstrip("/") + path
    resp = requests.get(url, headers=_headers(), timeout=30)
    try:
        return resp.status_code, resp.json()
    except ValueError:
        return resp.status_code, None

def api_post(path: str, payload: dict = None):
    url = API_BASE.rstrip("/") + path
    return requests.post(url, json=payload or {}, headers=_headers(), timeout=30)

def fetch_points():
    code, body = api_get("/api/rewards/points")
    if code == 200:
        return body.get("points", 0)
    if code == 401:
        # token expired or user gone: force a fresh login
        st.session_state["token"] = None
        st.session_state["email"] = None
    return None

# -------------------------------
# Sidebar: Auth (Register / Login)
# -------------------------------
if "token" not in st.session_state:
    st.session_state["token"] = None
if "email" not in st.session_state:
    st.session_state["email"] = None

st.sidebar.title("Account")
mode = st.sidebar.radio("Account action", ["Login", "Register", "Profile"])

if mode == "Register":
    with st.sidebar.form("register_form"):
        email = st.text_input("Email")
        pwd = st.text_input("Password", type="password")
        pwd2 = st.text_input("Confirm password", type="password")
        submitted = st.form_submit_button("Create account")
        if submitted:
            if pwd != pwd2:
                st.error("Passwords do not match")
            else:
                try:
                    r = api_post("/api/users/register", {"email": email, "password": pwd})
                    if r.ok:
                        data = r.json()
                        st.success("Account created, you are logged in")
                        st.session_state["token"] = data.get("token")
                        st.session_state["email"] = data.get("email")
                    else:
                        st.error(_message(r))
                except requests.RequestException as e:
                    st.error(f"Registration failed: {e}")

elif mode == "Login":
    with st.sidebar.form("login_form"):
        email = st.text_input("Email")
        pwd = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")
        if submitted:
            try:
                r = api_post("/api/users/login", {"email": email, "password": pwd})
                if r.ok:
                    data = r.json()
                    st.success("Logged in")
                    st.session_state["token"] = data.get("token")
                    st.session_state["email"] = data.get("email")
                else:
                    st.error("Login failed: " + _message(r))
            except requests.RequestException as e:
                st.error("Login failed: " + str(e))

else:
    if st.session_state["email"]:
        st.sidebar.write("Logged in as", st.session_state["email"])
        if st.sidebar.button("Logout"):
            st.session_state["token"] = None
            st.session_state["email"] = None
            st.rerun()
    else:
        st.sidebar.info("Please log in or register")

# -------------------------------
# Main app (requires login)
# -------------------------------
if not st.session_state["token"]:
    st.title("Welcome to EcoTrack Rewards")
    st.write("Log your recycling, earn points and redeem them for eco-friendly rewards.")
    st.write("Please log in or register to continue.")
    st.stop()

try:
    points = fetch_points()
except requests.RequestException as e:
    st.error("Could not reach the server: " + str(e))
    st.stop()

if points is None:
    st.warning("Your session has expired, please log in again.")
    st.stop()

tabs = st.tabs(["Dashboard", "Log Waste", "History", "Rewards", "Shipping", "Learn"])
tab_dashboard, tab_waste, tab_history, tab_rewards, tab_shipping, tab_learn = tabs

def load_history():
    code, body = api_get("/api/waste")
    if code == 200 and body:
        df = pd.DataFrame(body)
        df["createdAt"] = pd.to_datetime(df["createdAt"])
        return df
    return pd.DataFrame()

# -------------------------------
# Dashboard
# -------------------------------
with tab_dashboard:
    st.header("Dashboard")
    st.metric("Total points", points)

    df = load_history()
    if df.empty:
        st.info("No waste logged yet. Head to Log Waste to earn your first points.")
    else:
        df["date"] = df["createdAt"].dt.date

        daily = df.groupby("date")["pointsEarned"].sum().reset_index().sort_values("date").tail(30)
        fig1, ax1 = plt.subplots()
        ax1.plot(daily["date"], daily["pointsEarned"], marker="o")
        ax1.set_title("Points Earned per Day (Last 30 Days)")
        ax1.set_xlabel("Date")
        ax1.set_ylabel("Points")
        ax1.grid(alpha=0.2)
        st.pyplot(fig1)

        by_type = df.groupby("wasteType")["wasteAmount"].sum().reset_index()
        fig2, ax2 = plt.subplots()
        ax2.bar(by_type["wasteType"], by_type["wasteAmount"])
        ax2.set_title("Recycled by Type")
        ax2.set_xlabel("Waste type")
        ax2.set_ylabel("Grams")
        st.pyplot(fig2)

# -------------------------------
# Log Waste
# -------------------------------
with tab_waste:
    st.header("Log Waste")
    st.caption("Plastic and Paper earn 1 point per gram, Glass 2, Metal 3.")
    with st.form("waste_form"):
        waste_type = st.selectbox("Waste type", WASTE_TYPES)
        waste_amount = st.number_input("Amount (grams)", min_value=1, step=1, value=100)
        submitted = st.form_submit_button("Submit")
        if submitted:
            try:
                r = api_post("/api/waste", {"wasteType": waste_type, "wasteAmount": int(waste_amount)})
                if r.ok:
                    data = r.json()
                    st.success(f"{data.get('message')} +{data.get('pointsEarned')} points, total {data.get('totalPoints')}")
                else:
                    st.error(_message(r))
            except requests.RequestException as e:
                st.error("Error adding waste entry: " + str(e))

# -------------------------------
# History
# -------------------------------
with tab_history:
    st.header("History")
    df = load_history()
    if df.empty:
        st.info("No entries yet")
    else:
        st.dataframe(df[["createdAt", "wasteType", "wasteAmount", "pointsEarned"]].reset_index(drop=True))

# -------------------------------
# Rewards
# -------------------------------
with tab_rewards:
    st.header("Your Rewards")
    st.write(f"Total points: **{points}**")

    code, gifts = api_get("/api/rewards/gifts")
    if code != 200 or not gifts:
        st.info("No rewards available.")
    else:
        for gift in gifts:
            cols = st.columns([3, 1, 1])
            cols[0].subheader(gift["name"])
            cols[0].write(gift.get("description") or "")
            cols[1].write(f"{gift['pointsRequired']} points")
            short = points < gift["pointsRequired"]
            if cols[2].button("Insufficient Points" if short else "Redeem", key=f"redeem_{gift['id']}", disabled=short):
                try:
                    r = api_post(f"/api/rewards/redeem/{gift['id']}")
                    if r.ok:
                        st.success(f"{_message(r)} Remaining points: {r.json().get('totalPoints')}. "
                                   "Add a shipping address in the Shipping tab.")
                    else:
                        st.error(_message(r))
                except requests.RequestException as e:
                    st.error("Redeem failed: " + str(e))

    st.subheader("Redemption history")
    code, redeemed = api_get("/api/rewards/redemptions")
    if code == 200 and redeemed:
        st.table(pd.DataFrame(redeemed)[["createdAt", "rewardName", "pointsSpent"]])
    else:
        st.info("Nothing redeemed yet")

# -------------------------------
# Shipping
# -------------------------------
with tab_shipping:
    st.header("Shipping Address")
    with st.form("shipping_form"):
        c1, c2 = st.columns(2)
        first = c1.text_input("First name")
        last = c2.text_input("Last name")
        address = st.text_input("Street address")
        c3, c4, c5 = st.columns(3)
        city = c3.text_input("City")
        state = c4.text_input("State")
        zip_code = c5.text_input("ZIP")
        submitted = st.form_submit_button("Save address")
        if submitted:
            payload = {"firstName": first, "lastName": last, "address": address, "city": city, "state": state, "zip": zip_code}
            try:
                r = api_post("/api/shipping", payload)
                if r.ok:
                    st.success(_message(r))
                else:
                    st.error(_message(r))
            except requests.RequestException as e:
                st.error("Error saving address: " + str(e))

    code, addresses = api_get("/api/shipping")
    if code == 200 and addresses:
        st.table(pd.DataFrame(addresses)[["firstName", "lastName", "address", "city", "state", "zip"]])

# -------------------------------
# Learn
# -------------------------------
with tab_learn:
    st.header("Learn")
    code, body = api_get("/api/education")
    if code == 200:
        for item in body.get("content", []):
            st.subheader(item["topic"])
            st.write(item["description"])
    else:
        st.error("Could not load educational content")
