"""Mobile-friendly CSS styles for the app."""
import streamlit as st


def apply_mobile_styles():
    """Apply responsive layout, metric-card and status-badge styles."""
    st.markdown("""
    <style>
    /* Fixed sidebar width; expand content when collapsed */
    section[data-testid="stSidebar"][aria-expanded="false"] ~ div[data-testid="stAppViewContainer"] {
        margin-left: 0 !important;
    }
    section[data-testid="stSidebar"] {
        width: 18rem !important;
        min-width: 18rem !important;
        max-width: 18rem !important;
    }

    /* Dashboard metric cards */
    div[data-testid="stMetric"] {
        border: 1px solid rgba(128, 128, 128, 0.25);
        border-radius: 0.5rem;
        padding: 0.75rem 1rem;
    }

    /* Job status badges */
    .status-badge {
        display: inline-block;
        padding: 2px 10px;
        border-radius: 999px;
        font-size: 0.8rem;
        font-weight: 600;
    }
    .status-completed { background: #dcfce7; color: #166534; }
    .status-in-progress { background: #dbeafe; color: #1e40af; }
    .status-pending { background: #fef9c3; color: #854d0e; }
    .status-parts-ordered { background: #ffedd5; color: #9a3412; }
    .status-other { background: #f3f4f6; color: #1f2937; }

    @media (max-width: 768px) {
        /* Larger touch targets for buttons */
        .stButton button {
            min-height: 48px !important;
            font-size: 16px !important;
        }
        .block-container {
            padding-left: 1rem !important;
            padding-right: 1rem !important;
        }
        /* Prevent zoom on iOS */
        input, select, textarea {
            font-size: 16px !important;
        }
    }
    </style>
    """, unsafe_allow_html=True)
