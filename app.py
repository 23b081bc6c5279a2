import streamlit as st
import time
import base64
import traceback
import plotly.graph_objects as go

from codec_errors import CompressionError
from compression_stats import (
    calculate_compression_ratio,
    calculate_entropy,
    compare_codecs,
    huffman_code_table,
)
from huffman import huffman_decoding, huffman_encoding, read_container
from rle import run_length_decoding, run_length_encoding

# Page config
st.set_page_config(
    page_title="Data Compression Analyzer",
    layout="wide"
)

st.title("Data Compression Analyzer")
st.markdown("---")

if 'input_bytes' not in st.session_state:
    st.session_state.input_bytes = None
if 'file_name' not in st.session_state:
    st.session_state.file_name = None

# Sidebar for controls
with st.sidebar:
    st.header("Settings")

    input_type = st.radio(
        "Input Type:",
        ["Upload File", "Enter Text"]
    )

    algorithm = st.selectbox(
        "Algorithm:",
        ["Run-Length Encoding (RLE)", "Huffman Coding", "Compare All"]
    )

    code_rows = st.slider("Huffman code rows to show:", min_value=5, max_value=256, value=10)


def show_input_metrics(input_bytes):
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Size", f"{len(input_bytes):,} bytes")
    with col2:
        st.metric("Distinct Bytes", f"{len(set(input_bytes)):,}")
    with col3:
        st.metric("Entropy", f"{calculate_entropy(input_bytes):.3f} bits/byte")


def size_chart(original_size, compressed_size):
    fig = go.Figure(data=[
        go.Bar(name='Original', x=['Size'], y=[original_size], marker_color='blue'),
        go.Bar(name='Compressed', x=['Size'], y=[compressed_size], marker_color='green')
    ])
    fig.update_layout(
        title="Size Comparison",
        yaxis_title="Size (bytes)",
        height=300
    )
    return fig


# Main area
st.header("Input Data")
if input_type == "Upload File":
    uploaded_file = st.file_uploader("Upload any file:")

    if uploaded_file:
        st.session_state.input_bytes = uploaded_file.read()
        st.session_state.file_name = uploaded_file.name
        st.metric("File Name", uploaded_file.name)
        show_input_metrics(st.session_state.input_bytes)

        with st.expander("File Preview (First 500 bytes)"):
            st.text(st.session_state.input_bytes[:500].decode('utf-8', errors='replace'))
    else:
        st.session_state.input_bytes = None
else:
    input_text = st.text_area(
        "Enter text to compress:",
        height=200,
        value="AAAAAAAAAABBBBBBBBBBBCCCCCCCCCCDDDDDDDDDDEEEEEEEEEE"
    )

    if input_text:
        st.session_state.input_bytes = input_text.encode('utf-8')
        st.session_state.file_name = "text_input.txt"
        show_input_metrics(st.session_state.input_bytes)
    else:
        st.info("Enter some text to compress")
        st.session_state.input_bytes = None

input_bytes = st.session_state.input_bytes

if input_bytes:
    original_size = len(input_bytes)
    st.markdown("---")

    if algorithm != "Compare All":
        st.header(f"Algorithm: {algorithm}")

        with st.expander(" Algorithm Information"):
            if algorithm == "Run-Length Encoding (RLE)":
                st.markdown("""
                **How RLE Works:**
                - Scans data for consecutive repeated bytes
                - Replaces runs with [count, byte] pairs
                - Runs longer than 255 are split into several pairs

                **Best for:** Data with long repeated sequences
                """)
            else:
                st.markdown("""
                **How Huffman Coding Works:**
                - Counts how often each byte occurs
                - Merges the two rarest nodes until one tree remains
                - Frequent bytes get shorter codes
                - The code table travels in a header ahead of the packed bits

                **Best for:** Data with skewed byte frequencies
                """)

        if st.button(f"Run {algorithm}", type="primary"):
            try:
                start_time = time.time()
                if algorithm == "Run-Length Encoding (RLE)":
                    compressed_data = run_length_encoding(input_bytes)
                    compression_time = time.time() - start_time
                    decompressed_bytes = run_length_decoding(compressed_data)
                else:
                    compressed_data = huffman_encoding(input_bytes)
                    compression_time = time.time() - start_time
                    decompressed_bytes = huffman_decoding(compressed_data)

                compressed_size = len(compressed_data)
                ratio = calculate_compression_ratio(original_size, compressed_size)
                savings = (original_size - compressed_size) / original_size * 100

                st.subheader("Compression Results")
                col1, col2, col3, col4 = st.columns(4)
                with col1:
                    st.metric("Original Size", f"{original_size:,} B")
                with col2:
                    st.metric("Compressed Size", f"{compressed_size:,} B")
                with col3:
                    st.metric("Space Saved", f"{savings:.1f}%")
                with col4:
                    st.metric("Compression Ratio", f"{ratio:.2f}:1")
                st.caption(f"Compression time: {compression_time:.3f} s")

                st.plotly_chart(size_chart(original_size, compressed_size), use_container_width=True)

                st.subheader(" Decompression Test")
                if decompressed_bytes == input_bytes:
                    st.success("**Decompression Successful!** Original and decompressed data match exactly.")
                else:
                    st.error(
                        f"**Decompression Failed!** Original: {len(input_bytes)} bytes, "
                        f"Decompressed: {len(decompressed_bytes)} bytes"
                    )

                st.subheader("Download")
                b64 = base64.b64encode(compressed_data).decode()
                filename = f"compressed_{algorithm.split(' ')[0]}_{st.session_state.file_name}.bin"
                download_link = f'<a href="data:application/octet-stream;base64,{b64}" download="{filename}">📥 Download Compressed File</a>'
                st.markdown(download_link, unsafe_allow_html=True)

                if algorithm == "Huffman Coding":
                    container = read_container(compressed_data)
                    with st.expander("Container Layout"):
                        st.write(f"- Length field: 4 bytes ({container.original_length:,})")
                        st.write(f"- Header: {container.header_size:,} bytes, {len(container.codes)} entries")
                        st.write(f"- Body: {len(container.body):,} bytes")
                    with st.expander(f"Huffman Codes (Top {code_rows})"):
                        st.table(huffman_code_table(input_bytes).head(code_rows))

            except CompressionError as e:
                st.error(f"Error during compression: {str(e)}")
                with st.expander("Error Details"):
                    st.code(traceback.format_exc())

    else:
        st.header("Algorithm Comparison")

        if st.button("Compare All Algorithms", type="primary"):
            df = compare_codecs(input_bytes)

            st.subheader("Comparison Results")
            st.dataframe(df, use_container_width=True)

            fig = go.Figure(data=[
                go.Bar(
                    x=df["Algorithm"],
                    y=df["Size (bytes)"],
                    text=df["Size (bytes)"],
                    textposition='auto',
                    marker_color=['blue', 'green']
                )
            ])
            fig.update_layout(
                title="Compressed Size Comparison (lower is better)",
                xaxis_title="Algorithm",
                yaxis_title="Size (bytes)",
                height=400
            )
            st.plotly_chart(fig, use_container_width=True)

            if not df["Verified"].all():
                st.warning("At least one codec failed its round-trip check")

            best_size = df.loc[df["Size (bytes)"].idxmin()]
            st.info(f"**Best Size:** {best_size['Algorithm']}\n{best_size['Size (bytes)']:,} bytes")
else:
    st.info(" Please upload a file or enter text to begin compression")

st.markdown("---")
with st.expander(" About Compression Algorithms"):
    st.markdown("""
    | Algorithm | Best For | Speed | Complexity |
    |-----------|----------|-------|------------|
    | **RLE** | Repetitive data (AAAAABBB) | Very Fast | O(n) |
    | **Huffman** | Skewed byte frequencies | Moderate | O(n log n) |

    **Key Metrics:**
    - **Compression Ratio:** Original size / Compressed size (higher is better)
    - **Space Saved:** Percentage reduction in size
    - **Entropy:** Theoretical minimum bits per byte
    """)
