"""vn-director: AI dialogue direction for visual-novel scenes."""
