import sys
from datetime import date
from pathlib import Path
from typing import List, Tuple

import pandas as pd
import plotly.express as px
import streamlit as st

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from violence_tracker.config import FeedConfig
from violence_tracker.data import FilterSpec, IncidentFeedLoader
from violence_tracker.query import (
    filter_incidents,
    incident_type_distribution,
    incidents_with_location,
    monthly_counts,
    recent_incidents,
    state_distribution,
    to_frame,
    unique_values,
    victim_group_distribution,
)
from violence_tracker.store import IncidentStore
from violence_tracker.utils.exceptions import FeedBusyError, FetchError

INDIA_CENTER = {'lat': 22.5, 'lon': 79.0}
ALL = 'All'

TYPE_COLORS = px.colors.qualitative.Safe

PLOTLY_CONFIG = {
    'scrollZoom': True,
    'displaylogo': False,
    'modeBarButtonsToRemove': ['lasso2d', 'select2d']
}

TABLE_COLUMNS = {
    'effective_date': 'Date',
    'title': 'Title',
    'location_summary': 'Location',
    'victim_group': 'Victim group',
    'incident_type': 'Incident type',
    'police_action': 'Police action',
    'source_name': 'Source',
    'source_url': 'Link',
}


def get_store() -> IncidentStore:
    """One store per browser session; streamlit reruns reuse it."""
    if 'incident_store' not in st.session_state:
        loader = IncidentFeedLoader(FeedConfig.from_env())
        st.session_state['incident_store'] = IncidentStore(loader)
    return st.session_state['incident_store']


def refresh(store: IncidentStore) -> None:
    try:
        with st.spinner('Fetching incidents from the published sheet...'):
            store.refresh()
    except FeedBusyError:
        st.info('A refresh is already running.')
    except FetchError as err:
        st.session_state['error_banner'] = str(err)
    else:
        st.session_state.pop('error_banner', None)


def distribution_frame(pairs: List[Tuple[str, int]], label: str) -> pd.DataFrame:
    return pd.DataFrame(pairs, columns=[label, 'incidents'])


def plot_incident_map(frame: pd.DataFrame):
    if frame.empty:
        return None
    fig = px.scatter_mapbox(
        frame,
        lat='latitude',
        lon='longitude',
        color='incident_type',
        hover_name='title',
        hover_data={'location_summary': True, 'victim_group': True, 'latitude': False, 'longitude': False},
        color_discrete_sequence=TYPE_COLORS,
        mapbox_style='carto-positron',
        center=INDIA_CENTER,
        zoom=3.6,
        opacity=0.8,
    )
    fig.update_traces(marker={'size': 10})
    fig.update_layout(margin={'r': 0, 't': 10, 'l': 0, 'b': 0}, legend_title='Incident type')
    return fig


def sidebar_filters(store: IncidentStore) -> FilterSpec:
    st.sidebar.header('Filter incidents')
    search = st.sidebar.text_input('Search', placeholder='Title, place, group, perpetrator...')
    state = st.sidebar.selectbox('State', [ALL] + unique_values(store.incidents, 'state'))
    group = st.sidebar.selectbox('Victim group', [ALL] + unique_values(store.incidents, 'victim_group'))
    incident_type = st.sidebar.selectbox('Incident type', [ALL] + unique_values(store.incidents, 'incident_type'))

    st.sidebar.markdown('---')
    use_dates = st.sidebar.checkbox('Limit to a date range')
    date_from = date_to = None
    if use_dates:
        dated = [i.effective_date for i in store.incidents if i.effective_date is not None]
        lower = min(dated) if dated else date.today()
        upper = max(dated) if dated else date.today()
        date_from = st.sidebar.date_input('From', value=lower)
        date_to = st.sidebar.date_input('To', value=upper)

    return FilterSpec(
        search_text=search or None,
        state=None if state == ALL else state,
        victim_group=None if group == ALL else group,
        incident_type=None if incident_type == ALL else incident_type,
        date_from=date_from,
        date_to=date_to,
    )


def render_stats(store: IncidentStore) -> None:
    stats = store.stats
    cols = st.columns(4)
    cols[0].metric('Total incidents', f'{stats.total:,}')
    cols[1].metric('Last 7 days', f'{stats.weekly_count:,}')
    cols[2].metric('Last 30 days', f'{stats.monthly_count:,}')
    cols[3].metric('Most affected state', stats.most_affected_state or 'N/A')
    st.caption(f'{stats.states_count} states and {stats.districts_count} districts on record.')


def main():
    st.set_page_config(page_title='India Violence Tracker', layout='wide')
    st.markdown('## India Violence Tracker')

    store = get_store()
    if st.sidebar.button('⟲ Refresh data') or (not store.incidents and 'error_banner' not in st.session_state):
        refresh(store)

    if st.session_state.get('error_banner'):
        # stale data stays on screen below the banner
        st.error(f"Could not refresh the incident feed: {st.session_state['error_banner']}")

    if store.last_updated:
        st.caption(f'Last updated {store.last_updated:%d %b %Y %H:%M} UTC')

    if not store.incidents:
        st.info('No incidents loaded yet.')
        return

    spec = sidebar_filters(store)
    try:
        selected = filter_incidents(store.incidents, spec)
    except ValueError as err:
        st.error(str(err))
        return

    render_stats(store)

    st.markdown('## Incident map')
    located = to_frame(incidents_with_location(selected))
    map_fig = plot_incident_map(located)
    if map_fig is None:
        st.info('None of the selected incidents carry usable coordinates.')
    else:
        st.plotly_chart(map_fig, use_container_width=True, config=PLOTLY_CONFIG)
        missing = len(selected) - len(located)
        if missing:
            st.caption(f'{missing} selected incidents have no usable coordinates and are not on the map.')

    st.markdown('## Distribution')
    state_col, type_col = st.columns(2, gap='large')
    with state_col:
        states = distribution_frame(state_distribution(selected), 'state')
        if states.empty:
            st.info('No data available for state-wise distribution')
        else:
            state_fig = px.bar(states, x='state', y='incidents', title='Incidents by State', color_discrete_sequence=['#6366f1'])
            state_fig.update_layout(template='plotly_white', xaxis_title='', yaxis_title='Number of Incidents', xaxis_tickangle=-45)
            st.plotly_chart(state_fig, use_container_width=True, config=PLOTLY_CONFIG)
    with type_col:
        types = distribution_frame(incident_type_distribution(selected), 'incident_type')
        if types.empty:
            st.info('No data available for incident types')
        else:
            type_fig = px.pie(types, names='incident_type', values='incidents', hole=0.65, title='Incident Types', color_discrete_sequence=TYPE_COLORS)
            type_fig.update_layout(template='plotly_white', legend_title='')
            st.plotly_chart(type_fig, use_container_width=True, config=PLOTLY_CONFIG)

    trend_col, group_col = st.columns(2, gap='large')
    with trend_col:
        trend = monthly_counts(selected)
        if not trend.empty:
            trend_fig = px.line(trend, x='month', y='incidents', markers=True, title='Incidents per month')
            trend_fig.update_layout(template='plotly_white', xaxis_title='Month', yaxis_title='Incidents')
            st.plotly_chart(trend_fig, use_container_width=True, config=PLOTLY_CONFIG)
    with group_col:
        groups = distribution_frame(victim_group_distribution(selected), 'victim_group')
        if not groups.empty:
            group_fig = px.bar(groups, x='incidents', y='victim_group', orientation='h', title='Victim groups')
            group_fig.update_layout(template='plotly_white', yaxis_title='', xaxis_title='Incidents', showlegend=False)
            st.plotly_chart(group_fig, use_container_width=True, config=PLOTLY_CONFIG)

    st.markdown(f'## Incidents ({len(selected):,} matching)')
    table = to_frame(recent_incidents(selected, limit=len(selected)))
    if table.empty:
        st.info('No incidents found matching the current filters')
    else:
        table['effective_date'] = table['effective_date'].dt.strftime('%d %b %Y').fillna('N/A')
        st.dataframe(
            table[list(TABLE_COLUMNS)].rename(columns=TABLE_COLUMNS),
            use_container_width=True,
            hide_index=True,
            column_config={'Link': st.column_config.LinkColumn('Link')},
        )


if __name__ == '__main__':
    main()
