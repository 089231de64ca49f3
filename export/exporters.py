import os
import textwrap

import pandas as pd
from matplotlib.figure import Figure


def rankings_frame(rankings):
    """Rankings as a DataFrame with 1-based Rank."""
    rows = [
        {'Rank': idx, 'Album': album.name, 'Year': album.year, 'Rating': rating}
        for idx, (album, rating) in enumerate(rankings, start=1)
    ]
    return pd.DataFrame(rows, columns=['Rank', 'Album', 'Year', 'Rating'])


def export_rankings_csv(rankings, filepath):
    output_dir = os.path.dirname(filepath)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    df = rankings_frame(rankings)
    df.to_csv(filepath, index=False)
    return df


def ranking_statistics(rankings, total_votes=None):
    df = rankings_frame(rankings)
    if df.empty:
        return {'Status': 'No data'}
    stats = {
        'Albums Ranked': str(len(df)),
        'Top Album': df['Album'].iloc[0],
        'Bottom Album': df['Album'].iloc[-1],
        'Rating Spread': str(int(df['Rating'].max() - df['Rating'].min())),
        'Mean Rating': f"{df['Rating'].mean():.1f}",
        'Rating Std Dev': f"{df['Rating'].std(ddof=0):.1f}",
    }
    if total_votes is not None:
        stats['Total Votes'] = str(total_votes)
    return stats


def votes_frame(votes, catalog):
    """Vote history with album names; ids missing from the catalog are shown as-is."""
    names = {album.id: album.name for album in catalog}
    df = pd.DataFrame(list(votes), columns=['id', 'userId', 'winnerId', 'loserId', 'timestamp'])
    return pd.DataFrame({
        'Time': pd.to_datetime(df['timestamp'].astype('int64'), unit='ms'),
        'Winner': df['winnerId'].map(lambda i: names.get(i, i)),
        'Loser': df['loserId'].map(lambda i: names.get(i, i)),
        'Voter': df['userId'],
    })


def export_votes_csv(votes, catalog, filepath):
    output_dir = os.path.dirname(filepath)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    df = votes_frame(votes, catalog)
    df.to_csv(filepath, index=False)
    return df


def create_rankings_figure(rankings, title='Album Rankings'):
    df = rankings_frame(rankings)
    num = len(df)
    fig = Figure(figsize=(8, max(3, num * 0.45)), constrained_layout=True)
    ax = fig.add_subplot(111)

    if df.empty:
        ax.text(0.5, 0.5, 'No data available', ha='center', va='center', color='white')
        return fig

    # highest rating on top
    positions = list(range(num))[::-1]
    labels = ["\n".join(textwrap.wrap(f"#{r}. {name}", width=28))
              for r, name in zip(df['Rank'], df['Album'])]
    bars = ax.barh(positions, df['Rating'], color='#4B72B8', edgecolor='#444444')
    ax.set_yticks(positions)
    ax.set_yticklabels(labels, fontsize=8)

    low, high = df['Rating'].min(), df['Rating'].max()
    pad = max((high - low) * 0.15, 10)
    ax.set_xlim(low - pad, high + pad)
    for bar in bars:
        w = bar.get_width()
        ax.text(w + pad * 0.05, bar.get_y() + bar.get_height() / 2, f"{int(w)}",
                va='center', color='white', fontsize=8)

    ax.set_title(title, color='white', pad=12)
    ax.set_xlabel('Rating', color='white')
    fig.patch.set_facecolor('#2E2E2E')
    ax.set_facecolor('#333333')
    ax.tick_params(colors='white')
    for spine in ax.spines.values():
        spine.set_color('#FFFFFF')
    ax.grid(True, axis='x', color='#555555', linestyle='--', alpha=0.5)
    return fig


def export_chart_and_insights(fig, stats: dict, filepath: str):
    """
    Export the chart as a .png and the statistics as a .txt file.

    Args:
        fig: Matplotlib figure object.
        stats: Dictionary containing key statistics.
        filepath: Target filepath WITHOUT extension.
    """
    # Ensure output directory exists
    output_dir = os.path.dirname(filepath)
    if output_dir and not os.path.exists(output_dir):
        os.makedirs(output_dir)

    try:
        # Export the figure
        fig.savefig(filepath + ".png", bbox_inches="tight", dpi=150, facecolor=fig.get_facecolor())

        # Export the insights
        with open(filepath + ".txt", "w", encoding="utf-8") as f:
            f.write("Key Statistics:\n\n")
            for key, value in stats.items():
                f.write(f"{key}: {value}\n")

    except Exception as e:
        raise RuntimeError(f"Export failed: {str(e)}")
